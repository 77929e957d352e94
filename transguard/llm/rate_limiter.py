"""Per-client request rate limiting backed by the durable tier.

Responsibilities:
- Count requests per client address in fixed windows with atomic increments.
- Fail open when the durable tier is missing or unreachable.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from time import time

from ..errors import StorageUnavailableError
from ..models.datatypes import RateCounter, RateLimitDecision
from ..storage.kv_client import KVStore
from ..telemetry.logger import log_event

DEFAULT_WINDOW_SECONDS = 60
DEFAULT_MAX_REQUESTS = 20
RATE_LIMIT_KEY_PREFIX = "rate_limit:"


@dataclass(slots=True)
class RateLimiter:
    """Fixed-window per-address limiter.

    A burst straddling a window boundary can briefly exceed the steady-state
    rate; storage stays O(1) per client.
    """

    store: KVStore | None = None
    window_seconds: int = DEFAULT_WINDOW_SECONDS
    max_requests: int = DEFAULT_MAX_REQUESTS
    clock: Callable[[], float] = time

    def check(self, client_address: str) -> RateLimitDecision:
        """Count one request for the address and decide whether it may proceed."""

        if self.store is None:
            log_event("DEBUG", "rate_limit", "disabled", reason="durable_tier_unconfigured")
            return RateLimitDecision(allowed=True, remaining=self.max_requests, reset_at=0.0)

        try:
            counter = self._increment(client_address)
        except StorageUnavailableError as exc:
            log_event("WARNING", "rate_limit", "fail_open", error=type(exc).__name__)
            return RateLimitDecision(allowed=True, remaining=1, reset_at=0.0)

        allowed = counter.count <= self.max_requests
        if not allowed:
            log_event("INFO", "rate_limit", "rejected", count=counter.count)
        return RateLimitDecision(
            allowed=allowed,
            remaining=max(0, self.max_requests - counter.count),
            reset_at=counter.window_expires_at,
        )

    def _increment(self, client_address: str) -> RateCounter:
        """Increment the window counter, arming the window expiry when needed."""

        key = f"{RATE_LIMIT_KEY_PREFIX}{client_address}"
        count = self.store.incr(key)
        if count == 1:
            self.store.expire(key, self.window_seconds)
            ttl = self.window_seconds
        else:
            ttl = self.store.ttl(key)
            if ttl < 0:
                # Counter lost its expiry; re-arm so it cannot block forever.
                self.store.expire(key, self.window_seconds)
                ttl = self.window_seconds
        return RateCounter(
            client_key=key,
            count=count,
            window_expires_at=self.clock() + ttl,
        )
