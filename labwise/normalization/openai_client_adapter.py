from typing import Any

import httpx
import openai

from labwise.logging.logger import Log
from labwise.normalization.client_base import BaseCompletionClient
from labwise.normalization.exceptions import CompletionFailed


class OpenAIClientAdapter(BaseCompletionClient):
    """Completion client built on the OpenAI-compatible chat API."""

    def __init__(
        self,
        *,
        api_key: str,
        timeout_seconds: int,
        base_url: str | None = None,
        temperature: float | None = None,
    ) -> None:
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            timeout=timeout_seconds,
            base_url=base_url,
        )
        self._temperature = temperature

    async def complete_text(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        max_tokens: int,
        json_mode: bool = True,
    ) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self._create(messages, model, max_tokens, json_mode)

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
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": user_prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": f"data:{mime_type};base64,{image_base64}"},
                    },
                ],
            },
        ]
        return await self._create(messages, model, max_tokens, json_mode)

    async def _create(
        self,
        messages: list[dict[str, Any]],
        model: str,
        max_tokens: int,
        json_mode: bool,
    ) -> str:
        options: dict[str, Any] = {}
        if json_mode:
            options["response_format"] = {"type": "json_object"}
        # gpt-5 models reject a custom temperature.
        if self._temperature is not None and not model.startswith("gpt-5"):
            options["temperature"] = self._temperature

        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=messages,
                max_completion_tokens=max_tokens,
                **options,
            )
        except (openai.APITimeoutError, httpx.TimeoutException) as exc:
            raise CompletionFailed(
                f"AI provider timed out: {exc}", timed_out=True
            ) from exc
        except (openai.APIConnectionError, httpx.ConnectError) as exc:
            raise CompletionFailed(f"AI provider network error: {exc}") from exc
        except openai.APIStatusError as exc:
            raise CompletionFailed(
                f"AI provider API error ({exc.status_code}): {exc}",
                status_code=exc.status_code,
            ) from exc
        except openai.APIError as exc:
            raise CompletionFailed(f"AI provider API error: {exc}") from exc

        if not response.choices:
            raise CompletionFailed("AI returned no choices")
        choice = response.choices[0]
        finish_reason = choice.finish_reason
        Log.debug(
            f"Completion {response.id} from {response.model}: finish_reason={finish_reason}"
        )
        if finish_reason == "content_filter":
            raise CompletionFailed(
                "AI declined to answer (content filter)", finish_reason=finish_reason
            )
        content = choice.message.content
        if not content:
            raise CompletionFailed(
                f"AI returned empty response. Finish reason: {finish_reason}",
                finish_reason=finish_reason,
            )
        if finish_reason == "length":
            Log.warning(f"AI response hit the {max_tokens} token ceiling and may be cut off")
        return content
