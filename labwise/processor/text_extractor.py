import asyncio
from collections.abc import Callable

from labwise.logging.logger import Log
from labwise.pdf.base import BasePdfExtractor, PdfText
from labwise.pdf.exceptions import PdfExtractionError
from labwise.processor.classifier import ExtractionStrategy
from labwise.processor.exceptions import ExtractionFailed
from labwise.processor.models import ExtractedText, ExtractionMethod, UploadedDocument
from labwise.vision.ocr import VisionOcrAdapter

_RETRY_HINT = "Try uploading the report as a .txt file or as an image (PNG/JPG) for OCR processing."


class TextExtractor:
    """Produces ExtractedText for a document according to its strategy.

    Each source is read exactly once. PDF parsing runs in a worker thread and
    is abandoned after ``pdf_timeout_seconds``; the thread itself cannot be
    interrupted and finishes in the background.
    """

    def __init__(
        self,
        *,
        pdf_extractor: BasePdfExtractor,
        ocr: VisionOcrAdapter,
        pdf_timeout_seconds: float = 30.0,
        pdf_min_text_chars: int = 10,
        pdf_min_text_chars_with_fallback: int = 50,
        enable_vision_fallback_for_pdf: bool = False,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._ocr = ocr
        self._pdf_timeout_seconds = pdf_timeout_seconds
        self._pdf_min_text_chars = pdf_min_text_chars
        self._pdf_min_text_chars_with_fallback = pdf_min_text_chars_with_fallback
        self._vision_fallback = enable_vision_fallback_for_pdf

    async def extract(
        self,
        document: UploadedDocument,
        strategy: ExtractionStrategy,
        *,
        on_ocr: Callable[[], None] | None = None,
    ) -> ExtractedText:
        """Extract text, calling ``on_ocr`` right before any vision OCR call."""
        if strategy is ExtractionStrategy.PLAIN_TEXT:
            return self._extract_plain_text(document)
        if strategy is ExtractionStrategy.PDF_TEXT:
            return await self._extract_pdf(document, on_ocr)
        if on_ocr is not None:
            on_ocr()
        text = await self._ocr.transcribe(document.data, document.media_type)
        return ExtractedText(text=text, page_count=1, method=ExtractionMethod.VISION_OCR)

    def _extract_plain_text(self, document: UploadedDocument) -> ExtractedText:
        try:
            text = document.data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ExtractionFailed(
                f"Text file '{document.name}' is not valid UTF-8: {exc}"
            ) from exc
        if not text.strip():
            raise ExtractionFailed(f"Text file '{document.name}' is empty")
        return ExtractedText(text=text, page_count=1, method=ExtractionMethod.DIRECT_TEXT)

    async def _extract_pdf(
        self, document: UploadedDocument, on_ocr: Callable[[], None] | None
    ) -> ExtractedText:
        threshold = (
            self._pdf_min_text_chars_with_fallback
            if self._vision_fallback
            else self._pdf_min_text_chars
        )
        page_count = 1
        try:
            pdf_text = await self._parse_pdf(document.data)
            page_count = max(pdf_text.page_count, 1)
            if len(pdf_text.text.strip()) > threshold:
                Log.info(
                    f"PDF text layer extracted: {pdf_text.page_count} pages, "
                    f"{len(pdf_text.text)} chars"
                )
                return ExtractedText(
                    text=pdf_text.text,
                    page_count=page_count,
                    method=ExtractionMethod.PDF_TEXT_LAYER,
                )
            failure = ExtractionFailed(
                f"No meaningful text extracted from PDF '{document.name}' "
                f"({len(pdf_text.text.strip())} chars). {_RETRY_HINT}"
            )
        except ExtractionFailed as exc:
            failure = exc

        if not self._vision_fallback:
            raise failure
        Log.warning(f"PDF text extraction failed, attempting vision OCR: {failure}")
        if on_ocr is not None:
            on_ocr()
        text = await self._ocr.transcribe(document.data, "application/pdf")
        return ExtractedText(text=text, page_count=page_count, method=ExtractionMethod.VISION_OCR)

    async def _parse_pdf(self, data: bytes) -> PdfText:
        try:
            with Log.timed("PDF text extraction"):
                return await asyncio.wait_for(
                    asyncio.to_thread(self._pdf_extractor.extract, data),
                    timeout=self._pdf_timeout_seconds,
                )
        except asyncio.TimeoutError as exc:
            raise ExtractionFailed(
                f"PDF parsing timed out after {self._pdf_timeout_seconds}s. {_RETRY_HINT}",
                timed_out=True,
            ) from exc
        except PdfExtractionError as exc:
            raise ExtractionFailed(f"PDF extraction failed: {exc}. {_RETRY_HINT}") from exc
