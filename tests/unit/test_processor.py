import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from labwise.config.settings import Settings
from labwise.normalization.exceptions import CompletionFailed, InvalidModelResponse
from labwise.normalization.models import AnalysisResult, FindingStatus
from labwise.processor.exceptions import (
    ExtractionFailed,
    OcrFailed,
    PayloadTooLarge,
    PipelineError,
    QuotaExceeded,
    UnsupportedFormat,
)
from labwise.processor.pipeline import PipelineContext, PipelineStage, PipelineStep
from labwise.processor.processor import Processor, build_processor
from labwise.quota.base import QuotaDecision

GLUCOSE_TEXT = b"Glucose: 95 mg/dL (Normal: 70-100)"


def _mock_client(analysis_json: str) -> MagicMock:
    client = MagicMock()
    client.complete_text = AsyncMock(return_value=analysis_json)
    client.complete_vision = AsyncMock(return_value=analysis_json)
    return client


def _make_processor(client: MagicMock, **overrides: object) -> Processor:
    settings = Settings(completion_provider="example", **overrides)  # type: ignore[arg-type]
    return build_processor(settings, client=client)


async def _hang(**kwargs: object) -> str:
    await asyncio.sleep(5)
    return ""


class TestProcessorHappyPath:
    def test_plain_text_report(self, analysis_json: str) -> None:
        client = _mock_client(analysis_json)
        result = asyncio.run(
            _make_processor(client).analyze(GLUCOSE_TEXT, "text/plain", "report.txt")
        )
        assert isinstance(result, AnalysisResult)
        assert "glucose" in result.results[0].test_name.lower()
        assert result.results[0].status is FindingStatus.NORMAL
        assert "Glucose: 95 mg/dL" in client.complete_text.call_args.kwargs["user_prompt"]

    def test_declared_type_parameters_are_ignored(self, analysis_json: str) -> None:
        client = _mock_client(analysis_json)
        result = asyncio.run(
            _make_processor(client).analyze(
                GLUCOSE_TEXT, "text/plain; charset=utf-8", "report.txt"
            )
        )
        assert result.summary == "Glucose is normal."

    def test_image_is_transcribed_then_analyzed(
        self, analysis_json: str, png_bytes: bytes
    ) -> None:
        client = _mock_client(analysis_json)
        client.complete_vision = AsyncMock(return_value="Glucose: 95 mg/dL")
        asyncio.run(_make_processor(client).analyze(png_bytes, "image/png", "scan.png"))
        assert client.complete_vision.call_args.kwargs["json_mode"] is False
        assert "Glucose: 95 mg/dL" in client.complete_text.call_args.kwargs["user_prompt"]

    def test_direct_image_mode_skips_transcription(
        self, analysis_json: str, png_bytes: bytes
    ) -> None:
        client = _mock_client(analysis_json)
        processor = _make_processor(client, image_analysis_mode="direct")
        asyncio.run(processor.analyze(png_bytes, "image/png", "scan.png"))
        client.complete_vision.assert_awaited_once()
        assert client.complete_vision.call_args.kwargs["json_mode"] is True
        client.complete_text.assert_not_called()

    def test_fenced_response_is_accepted(self, analysis_json: str) -> None:
        client = _mock_client(f"```json\n{analysis_json}\n```")
        result = asyncio.run(
            _make_processor(client).analyze(GLUCOSE_TEXT, "text/plain", "report.txt")
        )
        assert len(result.results) == 1


class TestProcessorGates:
    @pytest.mark.parametrize(
        "media_type", ["application/json", "application/zip", "text/html", "video/mp4"]
    )
    def test_unsupported_format_makes_no_calls(self, media_type: str) -> None:
        client = _mock_client("{}")
        with pytest.raises(UnsupportedFormat) as exc_info:
            asyncio.run(_make_processor(client).analyze(b"{}", media_type, "file"))
        assert exc_info.value.stage == "classifying"
        client.complete_text.assert_not_called()
        client.complete_vision.assert_not_called()

    def test_oversized_image_rejected_before_any_call(self) -> None:
        client = _mock_client("{}")
        data = b"\x00" * (30 * 1024 * 1024)
        with pytest.raises(PayloadTooLarge) as exc_info:
            asyncio.run(_make_processor(client).analyze(data, "image/png", "huge.png"))
        assert exc_info.value.limit == 25 * 1024 * 1024
        client.complete_vision.assert_not_called()

    def test_quota_refusal_stops_before_pipeline(self) -> None:
        client = _mock_client("{}")
        quota = MagicMock()
        quota.check_quota.return_value = QuotaDecision(allowed=False, reset_at=123.0)
        processor = build_processor(
            Settings(completion_provider="example"), client=client, quota_provider=quota
        )
        with pytest.raises(QuotaExceeded) as exc_info:
            asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt", caller_id="u1"))
        assert exc_info.value.reset_at == 123.0
        assert exc_info.value.stage is None
        quota.check_quota.assert_called_once_with("u1")
        client.complete_text.assert_not_called()

    def test_quota_skipped_without_caller_id(self, analysis_json: str) -> None:
        quota = MagicMock()
        processor = build_processor(
            Settings(completion_provider="example"),
            client=_mock_client(analysis_json),
            quota_provider=quota,
        )
        asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt"))
        quota.check_quota.assert_not_called()


class TestProcessorFailures:
    def test_prose_around_json_fails_normalization(self, analysis_json: str) -> None:
        client = _mock_client(f"Sure! Here's the analysis: {analysis_json}")
        with pytest.raises(InvalidModelResponse) as exc_info:
            asyncio.run(_make_processor(client).analyze(GLUCOSE_TEXT, "text/plain", "r.txt"))
        assert exc_info.value.stage == "normalizing"

    def test_empty_pdf_text_fails_extraction(self, empty_pdf_bytes: bytes) -> None:
        client = _mock_client("{}")
        with pytest.raises(ExtractionFailed) as exc_info:
            asyncio.run(
                _make_processor(client).analyze(empty_pdf_bytes, "application/pdf", "blank.pdf")
            )
        assert exc_info.value.stage == "extracting"
        client.complete_text.assert_not_called()

    def test_completion_failure_is_tagged(self) -> None:
        client = _mock_client("{}")
        client.complete_text = AsyncMock(side_effect=CompletionFailed("network error"))
        with pytest.raises(CompletionFailed) as exc_info:
            asyncio.run(_make_processor(client).analyze(GLUCOSE_TEXT, "text/plain", "r.txt"))
        assert exc_info.value.stage == "completing"

    def test_ocr_failure_is_tagged(self, png_bytes: bytes) -> None:
        client = _mock_client("{}")
        client.complete_vision = AsyncMock(side_effect=CompletionFailed("network error"))
        with pytest.raises(OcrFailed) as exc_info:
            asyncio.run(_make_processor(client).analyze(png_bytes, "image/png", "scan.png"))
        assert exc_info.value.stage == "extracting"

    def test_unexpected_error_is_wrapped(self) -> None:
        class BrokenStep(PipelineStep):
            async def run(self, context: PipelineContext) -> PipelineContext:
                raise KeyError("boom")

        processor = Processor([(PipelineStage.TRUNCATING, BrokenStep())])
        with pytest.raises(PipelineError, match="Unexpected failure while truncating") as exc_info:
            asyncio.run(processor.analyze(b"x", "text/plain", "r.txt"))
        assert exc_info.value.stage == "truncating"
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_missing_result_raises(self) -> None:
        with pytest.raises(PipelineError, match="without a result"):
            asyncio.run(Processor([]).analyze(b"x", "text/plain", "r.txt"))


class TestProcessorTimeout:
    def test_completion_timeout(self) -> None:
        client = _mock_client("{}")
        client.complete_text = AsyncMock(side_effect=_hang)
        with pytest.raises(CompletionFailed) as exc_info:
            asyncio.run(
                _make_processor(client).analyze(
                    GLUCOSE_TEXT, "text/plain", "r.txt", timeout_seconds=0.05
                )
            )
        assert exc_info.value.timed_out is True
        assert exc_info.value.stage == "completing"

    def test_ocr_timeout(self, png_bytes: bytes) -> None:
        client = _mock_client("{}")
        client.complete_vision = AsyncMock(side_effect=_hang)
        with pytest.raises(OcrFailed) as exc_info:
            asyncio.run(
                _make_processor(client).analyze(
                    png_bytes, "image/png", "scan.png", timeout_seconds=0.05
                )
            )
        assert exc_info.value.timed_out is True
        assert exc_info.value.stage == "extracting"

    def test_pdf_fallback_ocr_timeout(self, empty_pdf_bytes: bytes) -> None:
        client = _mock_client("{}")
        client.complete_vision = AsyncMock(side_effect=_hang)
        processor = _make_processor(client, enable_vision_fallback_for_pdf=True)
        with pytest.raises(OcrFailed) as exc_info:
            asyncio.run(
                processor.analyze(
                    empty_pdf_bytes, "application/pdf", "blank.pdf", timeout_seconds=1.0
                )
            )
        assert exc_info.value.timed_out is True
        assert exc_info.value.stage == "extracting"
        client.complete_vision.assert_awaited_once()

    def test_pdf_parse_timeout_stays_extraction_failed(self) -> None:
        class SlowExtractStep(PipelineStep):
            async def run(self, context: PipelineContext) -> PipelineContext:
                await asyncio.sleep(5)
                return context

        processor = Processor([(PipelineStage.EXTRACTING, SlowExtractStep())])
        with pytest.raises(ExtractionFailed) as exc_info:
            asyncio.run(
                processor.analyze(b"%PDF", "application/pdf", "r.pdf", timeout_seconds=0.05)
            )
        assert exc_info.value.timed_out is True

    def test_configured_timeout_applies(self) -> None:
        client = _mock_client("{}")
        client.complete_text = AsyncMock(side_effect=_hang)
        processor = _make_processor(client, pipeline_timeout_seconds=0.05)
        with pytest.raises(CompletionFailed) as exc_info:
            asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt"))
        assert exc_info.value.timed_out is True


class TestBuildProcessor:
    def test_rejects_unknown_image_mode(self) -> None:
        settings = Settings(completion_provider="example", image_analysis_mode="sketch")
        with pytest.raises(ValueError, match="Unknown image analysis mode"):
            build_processor(settings)

    def test_creates_client_from_settings(self) -> None:
        processor = build_processor(Settings(completion_provider="example"))
        result = asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt"))
        assert result.results[0].test_name == "Glucose"

    def test_builds_rate_limiter_when_enabled(self, analysis_json: str) -> None:
        settings = Settings(
            completion_provider="example", rate_limit_enabled=True, rate_limit_max_requests=1
        )
        processor = build_processor(settings, client=_mock_client(analysis_json))
        asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt", caller_id="u1"))
        with pytest.raises(QuotaExceeded):
            asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt", caller_id="u1"))

    def test_no_rate_limiter_by_default(self, analysis_json: str) -> None:
        settings = Settings(completion_provider="example", rate_limit_max_requests=1)
        processor = build_processor(settings, client=_mock_client(analysis_json))
        for _ in range(3):
            asyncio.run(processor.analyze(GLUCOSE_TEXT, "text/plain", "r.txt", caller_id="u1"))

    def test_direct_image_data_url_uses_canonical_type(
        self, analysis_json: str, png_bytes: bytes
    ) -> None:
        client = _mock_client(analysis_json)
        processor = _make_processor(client, image_analysis_mode="direct")
        asyncio.run(processor.analyze(png_bytes, "IMAGE/JPG; name=scan", "scan.jpg"))
        assert client.complete_vision.call_args.kwargs["mime_type"] == "image/jpeg"
