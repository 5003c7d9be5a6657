from pathlib import Path

from labwise.processor.exceptions import PipelineError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, directory: Path | None = None) -> str:
    """Load a prompt template from a file.

    Args:
        name: Template file name, e.g. "text_user_prompt.txt".
        directory: Directory holding the templates.
                   Defaults to the bundled prompts directory.

    Returns:
        The raw template string with placeholders.

    Raises:
        PipelineError: if the file cannot be read.
    """
    path = (directory or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise PipelineError(f"Failed to load prompt template: {exc}") from exc
