"""Keyword-priority truncation of document text to a prompt budget."""

import re

from labwise.processor.models import TruncatedText

MEDICAL_KEYWORDS: tuple[str, ...] = (
    "lab", "test", "result", "blood", "glucose", "cholesterol", "hemoglobin",
    "cbc", "metabolic", "panel", "mg/dl", "mmol/l", "normal", "high", "low",
    "reference", "range", "abnormal", "critical", "value", "patient",
)

TRUNCATION_MARKER = "\n[Content truncated to preserve medical information...]"

# Captures the separator so each segment keeps its own trailing whitespace.
_SEGMENT_SPLIT = re.compile(r"((?<=[.!?])\s+|\n+)")


class TruncationPolicy:
    """Bounds text to a character budget, preferring medically relevant segments.

    Text is split into sentence-like segments on sentence punctuation and line
    breaks. Segments mentioning a keyword are kept first (leaving
    ``tail_margin`` characters spare), then the remaining budget is filled
    with other segments. Kept segments are emitted in document order and the
    truncation marker is appended. The marker counts against the budget, so a
    truncated result is never longer than ``max_chars`` and truncating it again
    returns it unchanged.
    """

    def __init__(
        self,
        keywords: tuple[str, ...] = MEDICAL_KEYWORDS,
        tail_margin: int = 100,
        marker: str = TRUNCATION_MARKER,
    ) -> None:
        self._keywords = tuple(k.lower() for k in keywords)
        self._tail_margin = tail_margin
        self._marker = marker

    def apply(self, text: str, max_chars: int) -> TruncatedText:
        if max_chars <= len(self._marker):
            raise ValueError(
                f"Truncation budget {max_chars} must exceed the marker length "
                f"{len(self._marker)}"
            )
        if len(text) <= max_chars:
            return TruncatedText(text=text, original_length=len(text))

        budget = max_chars - len(self._marker)
        segments = self._split(text)
        selected = self._select(segments, budget)
        body = "".join(
            segment + separator
            for i, (segment, separator) in enumerate(segments)
            if i in selected
        ).rstrip()
        if not body:
            # No single segment fits, e.g. one huge unpunctuated block.
            body = text[:budget].rstrip()
        return TruncatedText(
            text=body + self._marker,
            original_length=len(text),
            truncated=True,
        )

    def _select(self, segments: list[tuple[str, str]], budget: int) -> set[int]:
        selected: set[int] = set()
        used = 0
        priority_budget = max(budget - self._tail_margin, 0)

        for i, (segment, separator) in enumerate(segments):
            cost = len(segment) + len(separator)
            if segment.strip() and self._has_keyword(segment) and used + cost <= priority_budget:
                selected.add(i)
                used += cost

        for i, (segment, separator) in enumerate(segments):
            if i in selected or not segment.strip():
                continue
            cost = len(segment) + len(separator)
            if used + cost <= budget:
                selected.add(i)
                used += cost
        return selected

    def _has_keyword(self, segment: str) -> bool:
        lowered = segment.lower()
        return any(keyword in lowered for keyword in self._keywords)

    @staticmethod
    def _split(text: str) -> list[tuple[str, str]]:
        parts = _SEGMENT_SPLIT.split(text)
        return list(zip(parts[0::2], parts[1::2] + [""]))
