"""Sliding-window rate limiting with a temporary block after abuse."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from labwise.config.settings import Settings
from labwise.quota.base import BaseQuotaProvider, QuotaDecision
from labwise.quota.counter_store import BaseCounterStore, InMemoryCounterStore, RateLimitRecord


@dataclass(frozen=True)
class RateLimitStatus:
    requests: int
    reset_at: float
    blocked: bool


class RateLimiter(BaseQuotaProvider):
    """Allows ``max_requests`` per ``window_seconds`` for each identity.

    Exceeding the limit blocks the identity for ``block_seconds``.
    """

    def __init__(
        self,
        store: BaseCounterStore | None = None,
        *,
        window_seconds: float = 60,
        max_requests: int = 10,
        block_seconds: float = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store if store is not None else InMemoryCounterStore()
        self._window = window_seconds
        self._max_requests = max_requests
        self._block = block_seconds
        self._clock = clock
        self._last_prune = clock()

    @classmethod
    def from_settings(
        cls, settings: Settings, store: BaseCounterStore | None = None
    ) -> "RateLimiter":
        return cls(
            store,
            window_seconds=settings.rate_limit_window_seconds,
            max_requests=settings.rate_limit_max_requests,
            block_seconds=settings.rate_limit_block_seconds,
        )

    def check_quota(self, identity: str) -> QuotaDecision:
        return self.check(identity)

    def check(self, identity: str) -> QuotaDecision:
        """Count one request for ``identity`` and decide whether it may proceed."""
        now = self._clock()
        self._prune_expired(now)
        record = self._store.get(identity)

        if record is not None and record.blocked and record.reset_at < now:
            record.blocked = False
            record.count = 0
            record.attempts = []

        if record is not None and record.blocked:
            return QuotaDecision(allowed=False, reset_at=record.reset_at)

        if record is None or record.reset_at < now:
            reset_at = now + self._window
            self._store.set(identity, RateLimitRecord(count=1, reset_at=reset_at, attempts=[now]))
            return QuotaDecision(
                allowed=True, remaining=self._max_requests - 1, reset_at=reset_at
            )

        recent = [t for t in record.attempts if t > now - self._window]
        record.attempts = [*recent, now]
        record.count = len(record.attempts)

        if record.count > self._max_requests:
            record.blocked = True
            record.reset_at = now + self._block
            self._store.set(identity, record)
            return QuotaDecision(allowed=False, reset_at=record.reset_at)

        self._store.set(identity, record)
        return QuotaDecision(
            allowed=True,
            remaining=self._max_requests - record.count,
            reset_at=record.reset_at,
        )

    def _prune_expired(self, now: float) -> None:
        # Expired records behave exactly like missing ones.
        if now - self._last_prune < self._window:
            return
        self._last_prune = now
        self._store.prune(now)

    def status(self, identity: str) -> RateLimitStatus:
        """Current counters for ``identity`` without counting a request."""
        now = self._clock()
        record = self._store.get(identity)
        if record is None or record.reset_at < now:
            return RateLimitStatus(requests=0, reset_at=now + self._window, blocked=False)
        return RateLimitStatus(
            requests=record.count,
            reset_at=record.reset_at,
            blocked=record.blocked and record.reset_at > now,
        )
