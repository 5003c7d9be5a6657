import asyncio

from labwise.config.settings import Settings
from labwise.logging.logger import Log
from labwise.normalization.client_base import BaseCompletionClient
from labwise.normalization.exceptions import CompletionFailed
from labwise.normalization.factory import CompletionClientFactory
from labwise.normalization.models import AnalysisResult
from labwise.normalization.normalizer import ResponseNormalizer
from labwise.normalization.prompt_builder import PromptBuilder
from labwise.pdf.factory import PdfExtractorFactory
from labwise.processor.exceptions import (
    ExtractionFailed,
    OcrFailed,
    PipelineError,
    QuotaExceeded,
)
from labwise.processor.models import ExtractionMethod, UploadedDocument
from labwise.processor.pipeline import PipelineContext, PipelineStage, PipelineStep
from labwise.processor.steps import (
    ClassifyStep,
    CompleteStep,
    ExtractStep,
    NormalizeStep,
    PromptStep,
    TruncateStep,
)
from labwise.processor.text_extractor import TextExtractor
from labwise.processor.truncation import TruncationPolicy
from labwise.quota.base import BaseQuotaProvider
from labwise.quota.rate_limiter import RateLimiter
from labwise.vision.ocr import VisionOcrAdapter

IMAGE_ANALYSIS_MODES = ("ocr", "direct")


class Processor:
    """Runs one document through the analysis pipeline.

    Pipeline: classify -> extract -> truncate -> prompt -> complete -> normalize.
    Every stage runs at most once. The first failure stops the run and is
    raised as a PipelineError whose ``stage`` names where it happened; no
    partial result is ever returned. Invocations share no mutable state and
    may run concurrently.
    """

    def __init__(
        self,
        steps: list[tuple[PipelineStage, PipelineStep]],
        *,
        timeout_seconds: float | None = None,
        quota_provider: BaseQuotaProvider | None = None,
    ) -> None:
        self._steps = steps
        self._timeout_seconds = timeout_seconds
        self._quota_provider = quota_provider

    async def analyze(
        self,
        data: bytes,
        media_type: str,
        name: str,
        *,
        caller_id: str | None = None,
        timeout_seconds: float | None = None,
    ) -> AnalysisResult:
        """Analyze one uploaded document.

        Args:
            data: Raw file bytes.
            media_type: Declared media type of the upload.
            name: Display name, used in logs and error messages.
            caller_id: Identity checked against the quota provider, if one is set.
            timeout_seconds: Overall deadline, defaults to the configured one.

        Raises:
            PipelineError: the typed failure of the stage that stopped the run.
        """
        self._check_quota(caller_id)
        context = PipelineContext(document=UploadedDocument(data, media_type, name))
        timeout = timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        Log.info(f"Analyzing '{name}' ({media_type}, {len(data)} bytes)")

        try:
            with Log.timed(f"Analysis of '{name}'"):
                await asyncio.wait_for(self._run(context), timeout=timeout)
        except asyncio.TimeoutError as exc:
            error = self._timeout_error(context, timeout)
            Log.error(f"Analysis of '{name}' failed at {context.stage.value}: {error}")
            raise error from exc

        if context.result is None:
            raise PipelineError("Pipeline finished without a result")
        Log.info(
            f"Analysis of '{name}' complete: {len(context.result.results)} results, "
            f"{len(context.result.critical_findings)} critical findings"
        )
        return context.result

    async def _run(self, context: PipelineContext) -> None:
        for stage, step in self._steps:
            context.stage = stage
            try:
                await step.run(context)
            except PipelineError as exc:
                exc.stage = stage.value
                Log.error(f"Analysis of '{context.document.name}' failed at {stage.value}: {exc}")
                raise
            except Exception as exc:
                error = PipelineError(f"Unexpected failure while {stage.value}: {exc}")
                error.stage = stage.value
                Log.error(f"Analysis of '{context.document.name}' failed at {stage.value}: {exc}")
                raise error from exc
        context.stage = PipelineStage.DONE

    def _check_quota(self, caller_id: str | None) -> None:
        if self._quota_provider is None or caller_id is None:
            return
        decision = self._quota_provider.check_quota(caller_id)
        if not decision.allowed:
            Log.warning(f"Quota exceeded for '{caller_id}'")
            raise QuotaExceeded(caller_id, decision.reset_at)

    @staticmethod
    def _timeout_error(context: PipelineContext, timeout: float | None) -> PipelineError:
        message = f"Analysis timed out after {timeout}s while {context.stage.value}"
        error: PipelineError
        if context.stage is PipelineStage.EXTRACTING:
            if context.extraction_method is ExtractionMethod.VISION_OCR:
                error = OcrFailed(message, timed_out=True)
            else:
                error = ExtractionFailed(message, timed_out=True)
        elif context.stage is PipelineStage.COMPLETING:
            error = CompletionFailed(message, timed_out=True)
        else:
            error = PipelineError(message, timed_out=True)
        error.stage = context.stage.value
        return error


def build_processor(
    settings: Settings,
    *,
    client: BaseCompletionClient | None = None,
    quota_provider: BaseQuotaProvider | None = None,
) -> Processor:
    """Build a Processor with all required adapters.

    A ``RateLimiter`` is built from settings when ``rate_limit_enabled`` is set
    and no ``quota_provider`` is passed in.
    """
    image_mode = settings.image_analysis_mode.lower()
    if image_mode not in IMAGE_ANALYSIS_MODES:
        raise ValueError(
            f"Unknown image analysis mode '{image_mode}'. Choose from: {list(IMAGE_ANALYSIS_MODES)}"
        )
    if client is None:
        client = CompletionClientFactory.create(settings)
    if quota_provider is None and settings.rate_limit_enabled:
        quota_provider = RateLimiter.from_settings(settings)
    prompt_builder = PromptBuilder()
    ocr = VisionOcrAdapter(
        client=client,
        prompt_builder=prompt_builder,
        model=settings.openai_vision_model_name,
        max_tokens=settings.ocr_max_tokens,
    )
    text_extractor = TextExtractor(
        pdf_extractor=PdfExtractorFactory.create(settings),
        ocr=ocr,
        pdf_timeout_seconds=settings.pdf_timeout_seconds,
        pdf_min_text_chars=settings.pdf_min_text_chars,
        pdf_min_text_chars_with_fallback=settings.pdf_min_text_chars_with_fallback,
        enable_vision_fallback_for_pdf=settings.enable_vision_fallback_for_pdf,
    )
    steps: list[tuple[PipelineStage, PipelineStep]] = [
        (
            PipelineStage.CLASSIFYING,
            ClassifyStep(settings.max_upload_bytes, settings.verify_declared_type),
        ),
        (PipelineStage.EXTRACTING, ExtractStep(text_extractor, image_mode)),
        (
            PipelineStage.TRUNCATING,
            TruncateStep(TruncationPolicy(), settings.truncation_budget_chars),
        ),
        (PipelineStage.PROMPTING, PromptStep(prompt_builder)),
        (
            PipelineStage.COMPLETING,
            CompleteStep(
                client,
                model=settings.openai_model_name,
                vision_model=settings.openai_vision_model_name,
                min_tokens=settings.analysis_min_tokens,
                max_tokens=settings.analysis_max_tokens,
                json_mode=settings.completion_json_mode,
            ),
        ),
        (PipelineStage.NORMALIZING, NormalizeStep(ResponseNormalizer())),
    ]
    return Processor(
        steps,
        timeout_seconds=settings.pipeline_timeout_seconds,
        quota_provider=quota_provider,
    )
