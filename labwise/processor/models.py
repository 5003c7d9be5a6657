from dataclasses import dataclass
from enum import Enum


class ExtractionMethod(str, Enum):
    """How the text of a document was obtained."""

    DIRECT_TEXT = "direct-text"
    PDF_TEXT_LAYER = "pdf-text-layer"
    VISION_OCR = "vision-ocr"


@dataclass(frozen=True)
class UploadedDocument:
    """A caller-supplied file, alive for one pipeline invocation only."""

    data: bytes
    media_type: str
    name: str

    @property
    def size_bytes(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ExtractedText:
    """Text pulled out of a document, before any truncation."""

    text: str
    page_count: int
    method: ExtractionMethod

    @property
    def original_length(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class TruncatedText:
    """Document text bounded to the prompt budget."""

    text: str
    original_length: int
    truncated: bool = False
