"""Core datatypes shared across transguard modules.

Responsibilities:
- Represent records owned by cache, rate-limit, and cooldown components.
- Represent ephemeral per-request values exchanged between pipeline stages.

Key types:
- `CacheEntry`, `RateCounter`, `RateLimitDecision`, `CooldownRecord`,
  `PipelineRequest`, `RetryState`, `InputValidation`, and `OutputValidation`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A process-local cache value with its absolute expiry.

    Attributes:
        key: Cache key.
        value: JSON-serializable payload.
        expires_at: Wall-clock timestamp (seconds) after which the entry is dead.
    """

    key: str
    value: Any
    expires_at: float

    def is_expired(self, now: float) -> bool:
        """Return whether the entry is past its expiry at `now`."""

        return self.expires_at <= now


@dataclass(frozen=True, slots=True)
class RateCounter:
    """Snapshot of one client's request counter in the current window.

    Attributes:
        client_key: Durable-tier key for the client address.
        count: Post-increment request count in the window.
        window_expires_at: Wall-clock timestamp when the window lapses.
    """

    client_key: str
    count: int
    window_expires_at: float


@dataclass(frozen=True, slots=True)
class RateLimitDecision:
    """Outcome of a rate-limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window.
        reset_at: Wall-clock timestamp when the window resets, `0.0` when unknown.
    """

    allowed: bool
    remaining: int
    reset_at: float


@dataclass(frozen=True, slots=True)
class CooldownRecord:
    """Last successful translation time for one user.

    Attributes:
        user_key: Cache key for the user identity.
        last_request_at: Wall-clock timestamp of the last accepted translation.
    """

    user_key: str
    last_request_at: float


@dataclass(frozen=True, slots=True)
class PipelineRequest:
    """One translation request as received from the presentation layer.

    Attributes:
        query: Raw source text.
        user_id: Stable user identity used for cooldown tracking.
        client_address: Originating network address used for rate limiting.
    """

    query: str
    user_id: str
    client_address: str = "127.0.0.1"


@dataclass(slots=True)
class RetryState:
    """Mutable state scoped to a single retry-executor run."""

    attempt: int = 0
    last_error: Exception | None = None


@dataclass(frozen=True, slots=True)
class InputValidation:
    """Result of request text validation."""

    valid: bool
    error_reason: str | None = None


@dataclass(frozen=True, slots=True)
class OutputValidation:
    """Result of upstream output validation; `cleaned` is empty when invalid."""

    valid: bool
    cleaned: str = ""
