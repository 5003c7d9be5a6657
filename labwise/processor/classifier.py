"""Routes a declared media type to an extraction strategy."""

from enum import Enum

from labwise.processor.exceptions import TypeMismatch, UnsupportedFormat

ACCEPTED_MEDIA_TYPES = ["text/plain", "application/pdf", "image/*"]

_ALIASES = {"image/jpg": "image/jpeg"}

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"%PDF-", "application/pdf"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
]


class ExtractionStrategy(str, Enum):
    PLAIN_TEXT = "plain-text"
    PDF_TEXT = "pdf-text"
    VISION_IMAGE = "vision-image"


def classify(media_type: str) -> ExtractionStrategy:
    """Pick the extraction strategy for a declared media type.

    The declared type is trusted; see ``verify_declared_type`` for an optional
    check against the actual bytes.

    Raises:
        UnsupportedFormat: for any type other than text/plain, application/pdf
            or image/*.
    """
    normalized = base_media_type(media_type)
    if normalized == "text/plain":
        return ExtractionStrategy.PLAIN_TEXT
    if normalized == "application/pdf":
        return ExtractionStrategy.PDF_TEXT
    if normalized.startswith("image/") and len(normalized) > len("image/"):
        return ExtractionStrategy.VISION_IMAGE
    raise UnsupportedFormat(media_type, ACCEPTED_MEDIA_TYPES)


def sniff_media_type(data: bytes) -> str | None:
    """Detect a media type from magic bytes, or None when unrecognised."""
    for signature, media_type in _SIGNATURES:
        if data.startswith(signature):
            return media_type
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


def verify_declared_type(media_type: str, data: bytes) -> None:
    """Reject a declaration contradicted by a recognisable file signature.

    Content without a known signature (plain text included) is let through.

    Raises:
        TypeMismatch: when declared and detected types disagree.
    """
    declared = canonical_media_type(media_type)
    detected = sniff_media_type(data)
    if detected is None:
        return
    if declared != detected:
        raise TypeMismatch(media_type, detected)


def base_media_type(media_type: str) -> str:
    # "text/plain; charset=utf-8" -> "text/plain"
    return media_type.split(";", 1)[0].strip().lower()


def canonical_media_type(media_type: str) -> str:
    """Base media type with the non-standard image/jpg spelled image/jpeg."""
    base = base_media_type(media_type)
    return _ALIASES.get(base, base)
