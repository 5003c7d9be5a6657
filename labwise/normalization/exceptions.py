from labwise.processor.exceptions import PipelineError

_EXCERPT_CHARS = 500


class CompletionFailed(PipelineError):
    """Raised when the call to the model provider fails or yields nothing."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        finish_reason: str | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message, timed_out=timed_out)
        self.status_code = status_code
        self.finish_reason = finish_reason


class InvalidModelResponse(PipelineError):
    """Raised when the model reply violates the JSON or schema contract."""

    def __init__(self, reason: str, *, field: str | None = None, raw: str = "") -> None:
        location = f" at '{field}'" if field else ""
        super().__init__(f"Invalid model response{location}: {reason}")
        self.reason = reason
        self.field = field
        self.raw = raw[:_EXCERPT_CHARS]
