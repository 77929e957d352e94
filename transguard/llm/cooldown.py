"""Per-user minimum interval between accepted translations."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from math import ceil
from time import time

from ..models.datatypes import CooldownRecord
from ..storage.cache import CacheStore

DEFAULT_COOLDOWN_SECONDS = 5
COOLDOWN_KEY_PREFIX = "cooldown:"


@dataclass(slots=True)
class CooldownGuard:
    """Cooldown timestamps stored through the two-tier cache."""

    cache: CacheStore
    cooldown_seconds: float = DEFAULT_COOLDOWN_SECONDS
    clock: Callable[[], float] = time

    def record(self, user_id: str) -> CooldownRecord | None:
        """Return the stored cooldown record for a user, if any."""

        user_key = f"{COOLDOWN_KEY_PREFIX}{user_id}"
        raw = self.cache.get(user_key)
        if raw is None:
            return None
        try:
            last_request_at = float(raw)
        except (TypeError, ValueError):
            return None
        return CooldownRecord(user_key=user_key, last_request_at=last_request_at)

    def remaining(self, user_id: str) -> float:
        """Return seconds left before the user may translate again, `0.0` if none."""

        record = self.record(user_id)
        if record is None:
            return 0.0
        elapsed = self.clock() - record.last_request_at
        if elapsed >= self.cooldown_seconds:
            return 0.0
        return self.cooldown_seconds - max(0.0, elapsed)

    def touch(self, user_id: str) -> None:
        """Record now as the user's last accepted translation time."""

        self.cache.set(
            f"{COOLDOWN_KEY_PREFIX}{user_id}",
            self.clock(),
            ceil(self.cooldown_seconds) + 1,
        )
