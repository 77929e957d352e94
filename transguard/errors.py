"""Domain exceptions and failure-kind tags for the translation pipeline.

Responsibilities:
- Define the closed set of failure kinds used for retry and message decisions.
- Provide typed exceptions raised at component boundaries.
- Keep CLI/config diagnostics stage-aware.
"""

from __future__ import annotations

from enum import Enum


class FailureKind(str, Enum):
    """Closed set of failure tags assigned where an error is first observed."""

    INVALID_INPUT = "invalid_input"
    THROTTLED = "throttled"
    AUTH = "auth"
    BAD_REQUEST = "bad_request"
    QUOTA = "quota"
    OVERLOADED = "overloaded"
    TIMEOUT = "timeout"
    NETWORK = "network"
    MODEL = "model"
    INVALID_OUTPUT = "invalid_output"
    STORAGE_UNAVAILABLE = "storage_unavailable"
    UNKNOWN = "unknown"


NON_RETRYABLE_KINDS = frozenset({FailureKind.AUTH, FailureKind.BAD_REQUEST})


class PipelineStageError(RuntimeError):
    """Raised when a specific CLI/config stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint


class TranslationError(RuntimeError):
    """Base class for pipeline failures carrying a failure-kind tag."""

    failure_kind: FailureKind = FailureKind.UNKNOWN

    def __init__(self, message: str, *, failure_kind: FailureKind | None = None) -> None:
        super().__init__(message)
        if failure_kind is not None:
            self.failure_kind = failure_kind


class InvalidInputError(TranslationError):
    """Raised when request text violates length or denylist rules."""

    failure_kind = FailureKind.INVALID_INPUT


class ThrottledError(TranslationError):
    """Raised when a rate limit or cooldown blocks the request."""

    failure_kind = FailureKind.THROTTLED

    def __init__(self, message: str, *, retry_after_seconds: float = 0.0) -> None:
        super().__init__(message)
        self.retry_after_seconds = retry_after_seconds


class StorageUnavailableError(TranslationError):
    """Raised by the durable tier client; callers always degrade instead of failing."""

    failure_kind = FailureKind.STORAGE_UNAVAILABLE


class UpstreamError(TranslationError):
    """Raised when the upstream chat request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: FailureKind = FailureKind.UNKNOWN,
        status_code: int | None = None,
        provider_message: str | None = None,
    ) -> None:
        """Initialize upstream error metadata for retry and message mapping."""

        super().__init__(message, failure_kind=failure_kind)
        self.status_code = status_code
        self.provider_message = provider_message
