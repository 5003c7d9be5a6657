"""Turns raw model output into a trusted AnalysisResult."""

import json
import re

from labwise.logging.logger import Log
from labwise.normalization.exceptions import InvalidModelResponse
from labwise.normalization.models import AnalysisResult
from labwise.normalization.validator import validate_and_build

_FENCE = re.compile(r"^```[A-Za-z0-9_-]*[ \t]*\n?(.*?)\n?[ \t]*```$", re.DOTALL)


class ResponseNormalizer:
    """Strips Markdown fences, parses JSON and validates the schema.

    Only a fence wrapping the whole reply is removed. Prose before or after
    the JSON is left in place and fails parsing.
    """

    def normalize(self, raw: str) -> AnalysisResult:
        cleaned = strip_code_fence(raw)
        try:
            parsed = json.loads(cleaned)
        except (ValueError, RecursionError) as exc:
            Log.error(f"Model response is not valid JSON: {exc}")
            Log.debug(f"Unparseable model response:\n{raw[:500]}")
            raise InvalidModelResponse("malformed JSON", raw=raw) from exc

        try:
            result = validate_and_build(parsed)
        except InvalidModelResponse as exc:
            Log.error(f"Model response failed validation: {exc} (value: {exc.raw})")
            raise

        Log.info(
            f"Normalized model response: {len(result.results)} results, "
            f"{len(result.critical_findings)} critical findings, "
            f"{len(result.recommendations)} recommendations"
        )
        return result


def strip_code_fence(raw: str) -> str:
    """Remove a Markdown code fence (with or without language tag) around the text."""
    cleaned = raw.strip()
    match = _FENCE.match(cleaned)
    if match is None:
        return cleaned
    return match.group(1).strip()
