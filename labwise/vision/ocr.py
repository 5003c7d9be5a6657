import base64

from labwise.logging.logger import Log
from labwise.normalization.client_base import BaseCompletionClient
from labwise.normalization.exceptions import CompletionFailed
from labwise.normalization.prompt_builder import PromptBuilder
from labwise.processor.classifier import canonical_media_type
from labwise.processor.exceptions import OcrFailed


class VisionOcrAdapter:
    """Transcribes the visible text of an image (or PDF) with a vision model."""

    def __init__(
        self,
        *,
        client: BaseCompletionClient,
        prompt_builder: PromptBuilder,
        model: str,
        max_tokens: int,
    ) -> None:
        self._client = client
        self._prompt_builder = prompt_builder
        self._model = model
        self._max_tokens = max_tokens

    async def transcribe(self, data: bytes, mime_type: str) -> str:
        """Return the transcription of ``data``.

        Raises:
            OcrFailed: when the provider call fails or returns no text.
        """
        mime_type = canonical_media_type(mime_type)
        encoded = base64.b64encode(data).decode("ascii")
        prompt = self._prompt_builder.transcription(mime_type)
        Log.info(f"Starting vision OCR: {mime_type}, {len(encoded)} base64 chars")
        try:
            with Log.timed("Vision OCR"):
                text = await self._client.complete_vision(
                    system_prompt=prompt.system,
                    user_prompt=prompt.user,
                    model=self._model,
                    max_tokens=self._max_tokens,
                    image_base64=encoded,
                    mime_type=mime_type,
                    json_mode=False,
                )
        except CompletionFailed as exc:
            raise OcrFailed(f"Vision OCR failed: {exc}", timed_out=exc.timed_out) from exc

        text = text.strip()
        if not text:
            raise OcrFailed("Vision OCR returned no text")
        Log.info(f"Vision OCR completed: {len(text)} chars")
        return text
