"""Failure-kind classification for upstream errors.

HTTP status is the primary signal; message substrings are consulted only when
no structured status is available or the status alone is ambiguous.
"""

from __future__ import annotations

import socket

import requests

from ..errors import FailureKind, TranslationError

_STATUS_KINDS = {
    400: FailureKind.BAD_REQUEST,
    401: FailureKind.AUTH,
    403: FailureKind.AUTH,
    404: FailureKind.MODEL,
    408: FailureKind.TIMEOUT,
    429: FailureKind.QUOTA,
    502: FailureKind.OVERLOADED,
    503: FailureKind.OVERLOADED,
    504: FailureKind.TIMEOUT,
}

# Order matters: the first matching phrase group wins.
_MESSAGE_KINDS = (
    (FailureKind.AUTH, ("api key", "authentication", "unauthorized", "forbidden")),
    (FailureKind.BAD_REQUEST, ("permission", "bad request", "invalid request")),
    (FailureKind.OVERLOADED, ("overloaded", "service unavailable")),
    (FailureKind.QUOTA, ("quota", "rate limit", "too many requests")),
    (FailureKind.TIMEOUT, ("timeout", "timed out")),
    (FailureKind.MODEL, ("model",)),
    (FailureKind.NETWORK, ("network", "connection", "econnreset", "socket")),
)


def kind_from_status(status_code: int | None) -> FailureKind | None:
    """Map an HTTP status code to a failure kind, or `None` when it says nothing."""

    if not isinstance(status_code, int) or isinstance(status_code, bool):
        return None
    kind = _STATUS_KINDS.get(status_code)
    if kind is not None:
        return kind
    if status_code >= 500:
        return FailureKind.UNKNOWN
    return None


def kind_from_message(message: str) -> FailureKind:
    """Classify free-form error text by well-known phrases."""

    lowered = message.lower()
    for kind, phrases in _MESSAGE_KINDS:
        if any(phrase in lowered for phrase in phrases):
            return kind
    return FailureKind.UNKNOWN


def kind_from_transport(exc: BaseException) -> FailureKind:
    """Classify network-layer failures raised before an HTTP status is known."""

    if isinstance(exc, TimeoutError | socket.timeout | requests.Timeout):
        return FailureKind.TIMEOUT
    return FailureKind.NETWORK


def classify_failure(exc: BaseException) -> FailureKind:
    """Return the failure kind for any exception raised by a retried operation."""

    if isinstance(exc, TranslationError):
        return exc.failure_kind
    if isinstance(exc, TimeoutError | requests.RequestException | ConnectionError):
        status_kind = kind_from_status(getattr(getattr(exc, "response", None), "status_code", None))
        return status_kind or kind_from_transport(exc)
    status_code = getattr(exc, "status_code", None) or getattr(exc, "status", None)
    status_kind = kind_from_status(status_code)
    if status_kind is not None:
        return status_kind
    return kind_from_message(str(exc))
