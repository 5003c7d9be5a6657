from dataclasses import asdict, dataclass, field
from enum import Enum


class FindingStatus(str, Enum):
    NORMAL = "normal"
    HIGH = "high"
    LOW = "low"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Finding:
    """One interpreted lab value."""

    test_name: str
    value: str
    status: FindingStatus
    interpretation: str
    unit: str | None = None
    reference_range: str | None = None


@dataclass(frozen=True)
class AnalysisResult:
    """Validated output of one pipeline invocation."""

    summary: str
    results: list[Finding] = field(default_factory=list)
    critical_findings: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Serialize to the public JSON shape, omitting absent optional fields."""
        results = []
        for finding in self.results:
            item = asdict(finding)
            item["status"] = finding.status.value
            results.append({k: v for k, v in item.items() if v is not None})
        return {
            "results": results,
            "critical_findings": list(self.critical_findings),
            "summary": self.summary,
            "recommendations": list(self.recommendations),
        }
