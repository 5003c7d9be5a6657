from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class RateLimitRecord:
    count: int
    reset_at: float
    blocked: bool = False
    attempts: list[float] = field(default_factory=list)


class BaseCounterStore(ABC):
    """Storage for per-identity request counters.

    Swap the in-memory store for a shared one when running several processes.
    """

    @abstractmethod
    def get(self, key: str) -> RateLimitRecord | None:
        """Return the record for ``key``, or None if there is none."""

    @abstractmethod
    def set(self, key: str, record: RateLimitRecord) -> None:
        """Store ``record`` under ``key``."""

    @abstractmethod
    def prune(self, before: float) -> int:
        """Drop records whose ``reset_at`` is earlier than ``before``; return how many."""


class InMemoryCounterStore(BaseCounterStore):
    """Process-local counter store."""

    def __init__(self) -> None:
        self._records: dict[str, RateLimitRecord] = {}

    def get(self, key: str) -> RateLimitRecord | None:
        return self._records.get(key)

    def set(self, key: str, record: RateLimitRecord) -> None:
        self._records[key] = record

    def prune(self, before: float) -> int:
        expired = [key for key, record in self._records.items() if record.reset_at < before]
        for key in expired:
            del self._records[key]
        return len(expired)
