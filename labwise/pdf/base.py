from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PdfText:
    """Text layer of a PDF together with its page count."""

    text: str
    page_count: int


class BasePdfExtractor(ABC):
    """Contract for all PDF text extraction adapters."""

    @abstractmethod
    def extract(self, pdf_bytes: bytes) -> PdfText:
        """Extract the text layer from PDF bytes.

        Args:
            pdf_bytes: Raw PDF file content.

        Returns:
            PdfText with pages joined by newlines and outer whitespace stripped.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """
