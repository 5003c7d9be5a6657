from abc import ABC, abstractmethod


class BaseCompletionClient(ABC):
    """Contract for provider-specific chat completion clients."""

    @abstractmethod
    async def complete_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        json_mode: bool = True,
    ) -> str:
        """Return the provider's text reply to a system/user message pair.

        Raises:
            CompletionFailed: on transport, provider or empty-reply failures.
        """

    @abstractmethod
    async def complete_vision(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        image_base64: str,
        mime_type: str,
        json_mode: bool = True,
    ) -> str:
        """Same as complete_text, with a base64 image attached to the user message."""
