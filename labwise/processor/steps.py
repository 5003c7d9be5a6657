import base64

from labwise.logging.logger import Log
from labwise.normalization.client_base import BaseCompletionClient
from labwise.normalization.normalizer import ResponseNormalizer
from labwise.normalization.prompt_builder import PromptBuilder
from labwise.processor.classifier import (
    ExtractionStrategy,
    canonical_media_type,
    classify,
    verify_declared_type,
)
from labwise.processor.exceptions import PayloadTooLarge
from labwise.processor.models import ExtractionMethod
from labwise.processor.pipeline import PipelineContext, PipelineStep
from labwise.processor.text_extractor import TextExtractor
from labwise.processor.truncation import TruncationPolicy


def adaptive_token_limit(text_length: int, floor: int, ceiling: int) -> int:
    """Output token ceiling that grows with the input, bounded to [floor, ceiling]."""
    return min(ceiling, max(floor, text_length // 2))


class ClassifyStep(PipelineStep):
    def __init__(self, max_upload_bytes: int, verify_declared_type: bool = False) -> None:
        self._max_upload_bytes = max_upload_bytes
        self._verify_declared_type = verify_declared_type

    async def run(self, context: PipelineContext) -> PipelineContext:
        document = context.document
        context.strategy = classify(document.media_type)
        if document.size_bytes > self._max_upload_bytes:
            raise PayloadTooLarge(document.size_bytes, self._max_upload_bytes)
        if self._verify_declared_type:
            verify_declared_type(document.media_type, document.data)
        Log.info(
            f"Classified '{document.name}' ({document.media_type}, "
            f"{document.size_bytes} bytes) as {context.strategy.value}"
        )
        return context


class ExtractStep(PipelineStep):
    def __init__(self, text_extractor: TextExtractor, image_analysis_mode: str = "ocr") -> None:
        self._text_extractor = text_extractor
        self._image_analysis_mode = image_analysis_mode

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.strategy is None:
            raise ValueError("PipelineContext.strategy must be set before extraction")
        if (
            context.strategy is ExtractionStrategy.VISION_IMAGE
            and self._image_analysis_mode == "direct"
        ):
            context.analyze_image_directly = True
            Log.info(f"Image '{context.document.name}' will be analyzed directly by vision")
            return context

        def mark_ocr() -> None:
            context.extraction_method = ExtractionMethod.VISION_OCR

        context.extracted = await self._text_extractor.extract(
            context.document, context.strategy, on_ocr=mark_ocr
        )
        Log.info(
            f"Extracted {context.extracted.original_length} chars from "
            f"'{context.document.name}' via {context.extracted.method.value}"
        )
        return context


class TruncateStep(PipelineStep):
    def __init__(self, policy: TruncationPolicy, budget_chars: int) -> None:
        self._policy = policy
        self._budget_chars = budget_chars

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.extracted is None:
            return context
        context.truncated = self._policy.apply(context.extracted.text, self._budget_chars)
        if context.truncated.truncated:
            Log.warning(
                f"Text too long, truncated from {context.truncated.original_length} "
                f"to {len(context.truncated.text)} chars"
            )
        return context


class PromptStep(PipelineStep):
    def __init__(self, prompt_builder: PromptBuilder) -> None:
        self._prompt_builder = prompt_builder

    async def run(self, context: PipelineContext) -> PipelineContext:
        if context.analyze_image_directly:
            context.prompt = self._prompt_builder.vision_analysis(context.document.media_type)
        elif context.truncated is not None:
            context.prompt = self._prompt_builder.text_analysis(context.truncated.text)
        else:
            raise ValueError("PipelineContext.truncated must be set before prompting")
        Log.debug(f"Analysis prompt:\n{context.prompt.user}")
        return context


class CompleteStep(PipelineStep):
    def __init__(
        self,
        client: BaseCompletionClient,
        *,
        model: str,
        vision_model: str,
        min_tokens: int,
        max_tokens: int,
        json_mode: bool = True,
    ) -> None:
        self._client = client
        self._model = model
        self._vision_model = vision_model
        self._min_tokens = min_tokens
        self._max_tokens = max_tokens
        self._json_mode = json_mode

    async def run(self, context: PipelineContext) -> PipelineContext:
        prompt = context.prompt
        if prompt is None:
            raise ValueError("PipelineContext.prompt must be set before completion")
        with Log.timed("Model analysis"):
            if context.analyze_image_directly:
                document = context.document
                context.raw_response = await self._client.complete_vision(
                    system_prompt=prompt.system,
                    user_prompt=prompt.user,
                    model=self._vision_model,
                    max_tokens=self._max_tokens,
                    image_base64=base64.b64encode(document.data).decode("ascii"),
                    mime_type=canonical_media_type(document.media_type),
                    json_mode=self._json_mode,
                )
            else:
                text_length = len(context.truncated.text) if context.truncated else 0
                context.raw_response = await self._client.complete_text(
                    system_prompt=prompt.system,
                    user_prompt=prompt.user,
                    model=self._model,
                    max_tokens=adaptive_token_limit(
                        text_length, self._min_tokens, self._max_tokens
                    ),
                    json_mode=self._json_mode,
                )
        Log.debug(f"AI raw response:\n{context.raw_response[:500]}")
        return context


class NormalizeStep(PipelineStep):
    def __init__(self, normalizer: ResponseNormalizer) -> None:
        self._normalizer = normalizer

    async def run(self, context: PipelineContext) -> PipelineContext:
        context.result = self._normalizer.normalize(context.raw_response)
        return context
