"""Two-tier translation cache.

Responsibilities:
- Build stable cache keys from normalized source text.
- Read through the durable tier first, falling back to a process-local tier.
- Write to both tiers, tolerating durable-tier outages.
- Sweep expired process-local entries on demand.
- Track basic cache telemetry (hits/misses).
"""

from __future__ import annotations

from collections.abc import Callable
from hashlib import sha256
from threading import Lock
from time import time
from typing import Any

from ..errors import StorageUnavailableError
from ..models.datatypes import CacheEntry
from ..telemetry.logger import log_event
from .kv_client import KVStore

TRANSLATION_KEY_PREFIX = "translation:"


def normalize_source_text(text: str) -> str:
    """Collapse whitespace runs and trim text for cache identity."""

    return " ".join(text.split())


def make_translation_key(text: str) -> str:
    """Build the cache key for a source text."""

    digest = sha256(normalize_source_text(text).encode("utf-8")).hexdigest()
    return f"{TRANSLATION_KEY_PREFIX}{digest}"


class LocalCacheTier:
    """Lock-protected in-memory map with lazily enforced expiry."""

    def __init__(self, clock: Callable[[], float] = time) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Any | None:
        """Return a live value for key, or `None` when missing or expired."""

        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.is_expired(now):
            return None
        return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store value with an absolute expiry of `now + ttl_seconds`."""

        entry = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl_seconds)
        with self._lock:
            self._entries[key] = entry

    def cleanup(self) -> int:
        """Evict expired entries and return how many were removed."""

        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


class CacheStore:
    """Durable tier (optional) mirrored by a process-local tier.

    Durable-tier errors never propagate: reads treat them as misses and writes
    still update the local tier.
    """

    def __init__(
        self,
        durable: KVStore | None = None,
        local: LocalCacheTier | None = None,
    ) -> None:
        self.durable = durable
        self.local = local if local is not None else LocalCacheTier()
        self.hits = 0
        self.misses = 0
        self._stats_lock = Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value for key from the first tier that has it."""

        value = self._durable_get(key)
        if value is None:
            value = self.local.get(key)
        with self._stats_lock:
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
        return value

    def set(self, key: str, value: Any, ttl_seconds: int) -> None:
        """Write value to both tiers with the same TTL."""

        if self.durable is not None:
            try:
                self.durable.set(key, value, ex_seconds=ttl_seconds)
            except StorageUnavailableError as exc:
                log_event("WARNING", "cache", "durable_write_failed", error=type(exc).__name__)
        self.local.set(key, value, ttl_seconds)

    def cleanup(self) -> int:
        """Evict expired process-local entries."""

        evicted = self.local.cleanup()
        if evicted:
            log_event("DEBUG", "cache", "cleanup", evicted=evicted)
        return evicted

    def hit_rate(self) -> float:
        """Return cache hit rate for the store lifetime."""

        with self._stats_lock:
            hits, misses = self.hits, self.misses
        total = hits + misses
        if total == 0:
            return 0.0
        return hits / float(total)

    def _durable_get(self, key: str) -> Any | None:
        """Read from the durable tier, mapping outages to a miss."""

        if self.durable is None:
            return None
        try:
            return self.durable.get(key)
        except StorageUnavailableError as exc:
            log_event("WARNING", "cache", "durable_read_failed", error=type(exc).__name__)
            return None
