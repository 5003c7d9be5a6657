from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class QuotaDecision:
    """Answer of a quota provider for one request."""

    allowed: bool
    remaining: int | None = None
    reset_at: float | None = None


class BaseQuotaProvider(ABC):
    """Contract for usage gates consulted before a pipeline run."""

    @abstractmethod
    def check_quota(self, identity: str) -> QuotaDecision:
        """Decide whether ``identity`` may run one more analysis."""
