"""User-facing message catalog for pipeline error chunks.

Upstream error text is never shown to users; only these category messages are.
"""

from __future__ import annotations

from math import ceil

from ..errors import FailureKind

ERROR_PREFIX = "Error: "

INVALID_REQUEST = "Invalid input"
RATE_LIMITED = "Rate limit exceeded. Please wait."
INVALID_RESPONSE = "Invalid response from AI"

_MODEL_TROUBLE = "AI Model ပြဿနာရှိနေပါသည်။ ခဏစောင့်ပြီးပြန်လည်ကြိုးစားပေးပါ။"
_TIMEOUT = "အချိန်ကုန်သွားပါပြီ။ ပြန်စမ်းကြည့်ပါ။"
_QUOTA = "API ကန့်သတ်ချက်ပြည့်သွားပါပြီ။ ခဏစောင့်ပေးပါ။"
_NETWORK = "ကွန်ရက်ပြဿနာရှိနေပါသည်။"
_PERMISSION = "ခွင့်ပြုချက်ပြဿနာရှိနေပါသည်။"
_UNAVAILABLE = "ဝန်ဆောင်မှုယာယီမရရှိနိုင်ပါ။ ခဏစောင့်ပြီးပြန်လည်ကြိုးစားပေးပါ။"
_GENERIC = "ယာယီဘာသာပြန်ဆောင်ရွက်၍မရပါ။ ခဏစောင့်ပြီးပြန်လည်ကြိုးစားပေးပါ။"

_KIND_MESSAGES = {
    FailureKind.MODEL: _MODEL_TROUBLE,
    FailureKind.TIMEOUT: _TIMEOUT,
    FailureKind.QUOTA: _QUOTA,
    FailureKind.NETWORK: _NETWORK,
    FailureKind.AUTH: _PERMISSION,
    FailureKind.OVERLOADED: _UNAVAILABLE,
}


def message_for_kind(kind: FailureKind) -> str:
    """Return the localized message for an upstream failure kind."""

    return _KIND_MESSAGES.get(kind, _GENERIC)


def cooldown_message(remaining_seconds: float) -> str:
    """Return the wait hint for an active cooldown, in whole seconds."""

    return f"Wait {max(1, ceil(remaining_seconds))}s before retrying"


def error_chunk(message: str) -> str:
    """Prefix a message so callers can detect failure from the stream alone."""

    return f"{ERROR_PREFIX}{message}"


def is_error_chunk(chunk: str) -> bool:
    """Return whether a stream chunk is an error signal."""

    return chunk.startswith(ERROR_PREFIX)
