class PipelineError(Exception):
    """Base exception for every caller-facing pipeline failure.

    ``stage`` is filled in by the orchestrator with the name of the stage that
    failed. ``timed_out`` marks failures caused by a stage deadline.
    """

    def __init__(self, message: str, *, timed_out: bool = False) -> None:
        super().__init__(message)
        self.stage: str | None = None
        self.timed_out = timed_out


class UnsupportedFormat(PipelineError):
    """Raised when the declared media type has no extraction strategy."""

    def __init__(self, media_type: str, accepted: list[str]) -> None:
        super().__init__(
            f"Unsupported file type '{media_type}'. "
            f"Accepted types: {', '.join(accepted)}"
        )
        self.media_type = media_type
        self.accepted = accepted


class PayloadTooLarge(PipelineError):
    """Raised when an upload exceeds the configured byte ceiling."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            f"File too large: {size} bytes. Maximum size is "
            f"{limit} bytes ({limit / 1024 / 1024:.0f}MB)"
        )
        self.size = size
        self.limit = limit


class TypeMismatch(PipelineError):
    """Raised when the bytes contradict the declared media type."""

    def __init__(self, declared: str, detected: str) -> None:
        super().__init__(
            f"Declared type '{declared}' does not match file content '{detected}'"
        )
        self.declared = declared
        self.detected = detected


class ExtractionFailed(PipelineError):
    """Raised when no usable text could be extracted from a document."""


class OcrFailed(PipelineError):
    """Raised when the vision transcription call fails."""


class QuotaExceeded(PipelineError):
    """Raised when the quota provider refuses the caller."""

    def __init__(self, identity: str, reset_at: float | None = None) -> None:
        super().__init__(f"Usage quota exceeded for '{identity}'")
        self.identity = identity
        self.reset_at = reset_at
