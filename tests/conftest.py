"""Shared pytest fixtures and test doubles for the transguard test suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator
import json
from typing import Any

import pytest

from transguard.errors import StorageUnavailableError
from transguard.llm.cooldown import CooldownGuard
from transguard.llm.rate_limiter import RateLimiter
from transguard.llm.retry import RetryExecutor
from transguard.pipeline import TranslationPipeline
from transguard.storage.cache import CacheStore, LocalCacheTier
from transguard.telemetry.logger import configure_logging


class FakeClock:
    """Mutable wall clock for deterministic expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        """Initialize the clock at a fixed timestamp."""

        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""

        self.now += seconds


class InMemoryKV:
    """Durable-tier double with Redis-like expiry semantics on a fake clock."""

    def __init__(self, clock: FakeClock) -> None:
        """Initialize empty storage bound to a clock."""

        self._clock = clock
        self._values: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self.available = True
        self.commands: list[str] = []

    def _check(self, command: str) -> None:
        self.commands.append(command)
        if not self.available:
            raise StorageUnavailableError(f"KV command {command} failed (HTTP 503).")

    def _purge(self, key: str) -> None:
        expires_at = self._expiry.get(key)
        if expires_at is not None and expires_at <= self._clock():
            self._values.pop(key, None)
            self._expiry.pop(key, None)

    def get(self, key: str) -> Any | None:
        self._check("GET")
        self._purge(key)
        raw = self._values.get(key)
        return None if raw is None else json.loads(raw)

    def set(self, key: str, value: Any, ex_seconds: int | None = None) -> None:
        self._check("SET")
        self._values[key] = json.dumps(value, ensure_ascii=False)
        if ex_seconds is None:
            self._expiry.pop(key, None)
        else:
            self._expiry[key] = self._clock() + ex_seconds

    def incr(self, key: str) -> int:
        self._check("INCR")
        self._purge(key)
        count = int(self._values.get(key, "0")) + 1
        self._values[key] = str(count)
        return count

    def expire(self, key: str, seconds: int) -> bool:
        self._check("EXPIRE")
        if key not in self._values:
            return False
        self._expiry[key] = self._clock() + seconds
        return True

    def ttl(self, key: str) -> int:
        self._check("TTL")
        self._purge(key)
        if key not in self._values:
            return -2
        expires_at = self._expiry.get(key)
        if expires_at is None:
            return -1
        return int(expires_at - self._clock())


class FakeChatStream:
    """Upstream stream double yielding scripted pieces, optionally failing midway."""

    def __init__(self, pieces: list[str], error: Exception | None = None) -> None:
        """Initialize with pieces and an optional error raised after them."""

        self._pieces = pieces
        self._error = error
        self.closed = False
        self.yielded = 0

    def __iter__(self) -> Iterator[str]:
        for piece in self._pieces:
            self.yielded += 1
            yield piece
        if self._error is not None:
            raise self._error

    def close(self) -> None:
        self.closed = True


class ScriptedChatBackend:
    """Chat backend double replaying one scripted outcome per call.

    Each outcome is an exception to raise, a list of pieces, or a ready stream.
    The last outcome repeats once the script is exhausted.
    """

    def __init__(self, *outcomes: Exception | list[str] | FakeChatStream) -> None:
        """Initialize the outcome script."""

        self._outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []
        self.streams: list[FakeChatStream] = []

    def open_chat_stream(self, *, model: str, messages: list[dict[str, str]]) -> FakeChatStream:
        self.calls.append({"model": model, "messages": messages})
        index = min(len(self.calls), len(self._outcomes)) - 1
        outcome = self._outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        stream = outcome if isinstance(outcome, FakeChatStream) else FakeChatStream(list(outcome))
        self.streams.append(stream)
        return stream


@pytest.fixture(autouse=True)
def _quiet_logging() -> None:
    """Keep loguru output at test verbosity."""

    configure_logging("test")


@pytest.fixture
def clock() -> FakeClock:
    """Provide a deterministic wall clock."""

    return FakeClock()


@pytest.fixture
def kv(clock: FakeClock) -> InMemoryKV:
    """Provide an in-memory durable tier bound to the fake clock."""

    return InMemoryKV(clock)


@pytest.fixture
def sleeps() -> list[float]:
    """Collect retry backoff delays instead of sleeping."""

    return []


@pytest.fixture
def make_pipeline(
    clock: FakeClock,
    kv: InMemoryKV,
    sleeps: list[float],
) -> Callable[..., TranslationPipeline]:
    """Build pipelines sharing the fake clock, durable tier, and sleep recorder."""

    def _build(
        backend: ScriptedChatBackend,
        *,
        durable: InMemoryKV | None = kv,
        cache: CacheStore | None = None,
        max_requests: int = 20,
        cooldown_seconds: float = 5.0,
    ) -> TranslationPipeline:
        """Build one pipeline around a scripted backend."""

        shared_cache = cache or CacheStore(durable=durable, local=LocalCacheTier(clock=clock))
        return TranslationPipeline(
            chat_client=backend,
            cache=shared_cache,
            rate_limiter=RateLimiter(store=durable, max_requests=max_requests, clock=clock),
            cooldown=CooldownGuard(
                cache=shared_cache, cooldown_seconds=cooldown_seconds, clock=clock
            ),
            retry=RetryExecutor(sleeper=sleeps.append, jitter=lambda: 0.0),
        )

    return _build


@pytest.fixture
def chat_backend_factory() -> Callable[..., ScriptedChatBackend]:
    """Provide the scripted chat backend class as a factory."""

    return ScriptedChatBackend


@pytest.fixture
def chat_stream_factory() -> Callable[..., FakeChatStream]:
    """Provide the fake chat stream class as a factory."""

    return FakeChatStream
