"""Input/output validation and prompt escaping.

Responsibilities:
- Reject request text outside the allowed length range or carrying executable markup.
- Escape request text before it is embedded in the quoted prompt placeholder.
- Reject upstream output that is empty, oversized, or looks like a leaked error.

All checks are pure and side-effect free.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from ..models.datatypes import InputValidation, OutputValidation

DEFAULT_MIN_INPUT_LENGTH = 1
DEFAULT_MAX_INPUT_LENGTH = 2000
DEFAULT_MAX_OUTPUT_LENGTH = 5000

_DENYLIST_PATTERNS = (
    re.compile(r"<\s*script", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    # Any inline event handler inside a tag, then a bare attribute outside one.
    re.compile(r"<[^>]*[\s\"'/]on[a-z]+\s*=", re.IGNORECASE),
    re.compile(r"(?:^|[\s\"'/])on[a-z]{3,}\s*=", re.IGNORECASE),
)
_LEAKED_ERROR_MARKERS = ("error",)

# Backslash must be escaped first so later escapes are not doubled.
_PROMPT_ESCAPES = (
    ("\\", "\\\\"),
    ('"', '\\"'),
    ("\n", "\\n"),
    ("\r", "\\r"),
)

FORBIDDEN_CONTENT_REASON = "တားမြစ်ထားသော စာသားပါဝင်နေပါသည်။"


def length_reason(min_length: int, max_length: int) -> str:
    """Return the localized message for a length violation."""

    return f"စာသားအရှည်မှားနေပါသည်။ ({min_length}-{max_length} လုံး)"


def contains_denylisted_markup(text: str) -> bool:
    """Return whether text matches any executable-markup pattern."""

    return any(pattern.search(text) for pattern in _DENYLIST_PATTERNS)


def sanitize_for_prompt(text: str) -> str:
    """Escape characters that could break out of the quoted prompt placeholder.

    Must run only after input validation has passed.
    """

    escaped = text
    for raw, replacement in _PROMPT_ESCAPES:
        escaped = escaped.replace(raw, replacement)
    return escaped


@dataclass(frozen=True, slots=True)
class TextValidator:
    """Length-bounded validator for request text and upstream output."""

    min_input_length: int = DEFAULT_MIN_INPUT_LENGTH
    max_input_length: int = DEFAULT_MAX_INPUT_LENGTH
    max_output_length: int = DEFAULT_MAX_OUTPUT_LENGTH

    def validate_input(self, text: str) -> InputValidation:
        """Validate request text length (inclusive bounds) and markup denylist."""

        if not self.min_input_length <= len(text) <= self.max_input_length:
            return InputValidation(
                valid=False,
                error_reason=length_reason(self.min_input_length, self.max_input_length),
            )
        if contains_denylisted_markup(text):
            return InputValidation(valid=False, error_reason=FORBIDDEN_CONTENT_REASON)
        return InputValidation(valid=True)

    def validate_output(self, text: str | None) -> OutputValidation:
        """Validate accumulated upstream output and return its trimmed form."""

        if not text or not text.strip():
            return OutputValidation(valid=False)

        cleaned = text.strip()
        if len(cleaned) > self.max_output_length:
            return OutputValidation(valid=False)

        lowered = cleaned.lower()
        if any(marker in lowered for marker in _LEAKED_ERROR_MARKERS):
            return OutputValidation(valid=False)

        return OutputValidation(valid=True, cleaned=cleaned)

    def sanitize_for_prompt(self, text: str) -> str:
        """Escape text for the prompt template."""

        return sanitize_for_prompt(text)
