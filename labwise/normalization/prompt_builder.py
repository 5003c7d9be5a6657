"""Builds the system/user message pairs sent to the model provider."""

from dataclasses import dataclass
from pathlib import Path

from labwise.normalization.prompt_loader import load_prompt_template
from labwise.normalization.schema import describe_empty_result, describe_response_shape


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str


class PromptBuilder:
    """Stateless prompt assembly from bundled templates.

    Templates are read once at construction; every build method is a pure
    function of its arguments.
    """

    def __init__(self, prompt_dir: Path | None = None) -> None:
        self._analysis_system = load_prompt_template("analysis_system_prompt.txt", prompt_dir)
        self._text_user = load_prompt_template("text_user_prompt.txt", prompt_dir)
        self._vision_system = load_prompt_template("vision_system_prompt.txt", prompt_dir)
        self._vision_user = load_prompt_template("vision_user_prompt.txt", prompt_dir)
        self._ocr_system = load_prompt_template("ocr_system_prompt.txt", prompt_dir)
        self._ocr_user = load_prompt_template("ocr_user_prompt.txt", prompt_dir)
        self._response_shape = describe_response_shape()
        self._empty_result = describe_empty_result()

    def text_analysis(self, document_text: str) -> Prompt:
        """Prompt for analyzing extracted or transcribed document text."""
        return Prompt(
            system=self._analysis_system.format(response_shape=self._response_shape),
            user=self._text_user.format(
                empty_result=self._empty_result,
                document_text=document_text,
            ),
        )

    def vision_analysis(self, mime_type: str) -> Prompt:
        """Prompt for analyzing an attached image directly."""
        return Prompt(
            system=self._vision_system.format(response_shape=self._response_shape),
            user=self._vision_user.format(
                document_kind=_document_kind(mime_type),
                empty_result=self._empty_result,
            ),
        )

    def transcription(self, mime_type: str) -> Prompt:
        """Prompt asking the model to transcribe the visible text of a file."""
        return Prompt(
            system=self._ocr_system.strip(),
            user=self._ocr_user.format(document_kind=_document_kind(mime_type)),
        )


def _document_kind(mime_type: str) -> str:
    return "PDF document" if "pdf" in mime_type.lower() else "image"
