"""Validates parsed model output against the AnalysisResult schema."""

from typing import Any

from labwise.normalization.exceptions import InvalidModelResponse
from labwise.normalization.models import AnalysisResult, Finding, FindingStatus
from labwise.normalization.schema import FINDING_SCHEMA

_VALUE_EXCERPT_CHARS = 200
_VALID_STATUSES = frozenset(FINDING_SCHEMA["properties"]["status"]["enum"])
_REQUIRED_FINDING_FIELDS: list[str] = FINDING_SCHEMA["required"]
_OPTIONAL_FINDING_FIELDS = [
    name for name in FINDING_SCHEMA["properties"] if name not in _REQUIRED_FINDING_FIELDS
]


def validate_and_build(data: Any) -> AnalysisResult:
    """Validate parsed JSON and build an AnalysisResult.

    Absent ``results``, ``critical_findings`` and ``recommendations`` become
    empty lists; an explicit null or any other wrong type is rejected, as is
    a missing or blank ``summary``. Nothing is coerced.

    Raises:
        InvalidModelResponse: on the first violation, naming the field.
    """
    if not isinstance(data, dict):
        raise _violation("<root>", "must be a JSON object", data)
    results = _build_results(data.get("results", []))
    critical_findings = _build_string_list(data, "critical_findings")
    summary = _build_summary(data.get("summary"))
    recommendations = _build_string_list(data, "recommendations")
    return AnalysisResult(
        results=results,
        critical_findings=critical_findings,
        summary=summary,
        recommendations=recommendations,
    )


def _build_results(raw: Any) -> list[Finding]:
    if not isinstance(raw, list):
        raise _violation("results", "must be a list", raw)
    return [_build_finding(item, i) for i, item in enumerate(raw)]


def _build_finding(raw: Any, index: int) -> Finding:
    path = f"results[{index}]"
    if not isinstance(raw, dict):
        raise _violation(path, "must be an object", raw)
    for name in _REQUIRED_FINDING_FIELDS:
        if name not in raw:
            raise _violation(f"{path}.{name}", "is required", raw)
        if not isinstance(raw[name], str):
            raise _violation(f"{path}.{name}", "must be a string", raw[name])
    for name in _OPTIONAL_FINDING_FIELDS:
        value = raw.get(name)
        if value is not None and not isinstance(value, str):
            raise _violation(f"{path}.{name}", "must be a string or absent", value)
    status = raw["status"]
    if status not in _VALID_STATUSES:
        raise _violation(
            f"{path}.status",
            f"must be one of {sorted(_VALID_STATUSES)}, got {status!r}",
            status,
        )
    return Finding(
        test_name=raw["test_name"],
        value=raw["value"],
        status=FindingStatus(status),
        interpretation=raw["interpretation"],
        unit=raw.get("unit"),
        reference_range=raw.get("reference_range"),
    )


def _build_string_list(data: dict[str, Any], field: str) -> list[str]:
    raw = data.get(field, [])
    if not isinstance(raw, list):
        raise _violation(field, "must be a list", raw)
    for i, item in enumerate(raw):
        if not isinstance(item, str):
            raise _violation(f"{field}[{i}]", "must be a string", item)
    return list(raw)


def _build_summary(raw: Any) -> str:
    if not isinstance(raw, str) or not raw.strip():
        raise _violation("summary", "must be a non-empty string", raw)
    return raw


def _violation(field: str, reason: str, value: Any) -> InvalidModelResponse:
    return InvalidModelResponse(
        reason,
        field=field,
        raw=repr(value)[:_VALUE_EXCERPT_CHARS],
    )
