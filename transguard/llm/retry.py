"""Retry-with-backoff wrapper for upstream operations.

Responsibilities:
- Re-run a failing operation a bounded number of times.
- Fail fast on failures no retry can fix (auth, malformed request).
- Back off exponentially with jitter, harder for overloaded backends.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
import random
from threading import Lock
import time
from typing import TypeVar

from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt

from ..errors import NON_RETRYABLE_KINDS, FailureKind
from ..models.datatypes import RetryState
from ..telemetry.logger import log_event
from .classification import classify_failure

_Result = TypeVar("_Result")

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0
DEFAULT_MAX_DELAY_SECONDS = 10.0
MAX_JITTER_SECONDS = 1.0


@dataclass(slots=True)
class RetryExecutor:
    """Bounded retry policy with kind-aware exponential backoff.

    `sleeper` only suspends the calling thread, so concurrent requests keep
    running while one of them backs off.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS
    max_delay_seconds: float = DEFAULT_MAX_DELAY_SECONDS
    sleeper: Callable[[float], None] = time.sleep
    jitter: Callable[[], float] = random.random
    classifier: Callable[[BaseException], FailureKind] = classify_failure
    retry_attempt_count: int = 0
    _lock: Lock = field(default_factory=Lock, init=False, repr=False, compare=False)

    def run(self, operation: Callable[[], _Result], *, operation_name: str = "upstream") -> _Result:
        """Run operation, retrying retryable failures, and return its result.

        Raises:
            Exception: The first non-retryable failure, or the last failure once
                retries are exhausted.
        """

        state = RetryState()

        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            state.attempt = retry_state.attempt_number
            state.last_error = exc
            log_event(
                "DEBUG",
                "retry",
                "scheduled",
                operation=operation_name,
                attempt=f"{retry_state.attempt_number}/{self.max_retries + 1}",
                delay_ms=round(retry_state.next_action.sleep * 1000),
                failure_kind=self.classifier(exc).value,
            )
            with self._lock:
                self.retry_attempt_count += 1

        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=self._wait,
            retry=retry_if_exception(self.is_retryable),
            sleep=self.sleeper,
            before_sleep=before_sleep,
            reraise=True,
        )
        try:
            return retrying(operation)
        except Exception as exc:
            kind = self.classifier(exc)
            if kind in NON_RETRYABLE_KINDS:
                log_event(
                    "WARNING",
                    "retry",
                    "non_retryable",
                    operation=operation_name,
                    failure_kind=kind.value,
                )
            else:
                log_event(
                    "WARNING",
                    "retry",
                    "exhausted",
                    operation=operation_name,
                    attempts=state.attempt + 1,
                    failure_kind=kind.value,
                )
            raise

    def is_retryable(self, exc: BaseException) -> bool:
        """Return whether another attempt could fix this failure."""

        return self.classifier(exc) not in NON_RETRYABLE_KINDS

    def backoff_delay(self, kind: FailureKind, attempt: int) -> float:
        """Return the capped delay before retrying after failed attempt `attempt`."""

        multiplier = 3 if kind is FailureKind.OVERLOADED else 2
        raw_delay = (
            self.base_delay_seconds * (multiplier**attempt)
            + self.jitter() * MAX_JITTER_SECONDS
        )
        return min(raw_delay, self.max_delay_seconds)

    def _wait(self, retry_state: RetryCallState) -> float:
        kind = self.classifier(retry_state.outcome.exception())
        return self.backoff_delay(kind, retry_state.attempt_number - 1)
