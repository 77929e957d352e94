"""Unit tests for request/response validation, prompt escaping, and fallback lookup."""

from __future__ import annotations

import pytest

from transguard.text.fallback import BASIC_SUFFIX, FallbackDictionary
from transguard.text.validator import (
    FORBIDDEN_CONTENT_REASON,
    TextValidator,
    length_reason,
    sanitize_for_prompt,
)


def test_validate_input_accepts_length_bounds_inclusively() -> None:
    """Texts of exactly the minimum and maximum length are both accepted."""

    validator = TextValidator(min_input_length=1, max_input_length=5)

    assert validator.validate_input("a").valid is True
    assert validator.validate_input("abcde").valid is True


@pytest.mark.parametrize("text", ["", "x" * 2001])
def test_validate_input_rejects_out_of_range_length(text: str) -> None:
    """Empty and oversized texts fail with the localized length reason."""

    result = TextValidator().validate_input(text)

    assert result.valid is False
    assert result.error_reason == length_reason(1, 2000)
    assert "1-2000" in result.error_reason


@pytest.mark.parametrize(
    "text",
    [
        "<script>alert(1)</script>",
        "< SCRIPT src=x>",
        "click javascript:void(0)",
        '<img src=x onerror="steal()">',
        "<body ONLOAD = run()>",
        "<img src=x ondblclick=alert(1)>",
        '<div onmouseenter="run()">',
        "<p style=x onanimationstart=go()>",
        "<svg/onpointerdown=alert(1)>",
        'x" onpointerdown="alert(1)',
    ],
)
def test_validate_input_rejects_executable_markup(text: str) -> None:
    """Script tags, javascript URLs, and any inline event handler are denylisted."""

    result = TextValidator().validate_input(text)

    assert result.valid is False
    assert result.error_reason == FORBIDDEN_CONTENT_REASON


@pytest.mark.parametrize(
    "text",
    [
        "ငွေထုတ်ချင်ပါတယ်",
        "你好，我想提款",
        "one = 1",
        "online help",
        "turn on = enable",
        "<b>bonus = 2</b>",
    ],
)
def test_validate_input_accepts_ordinary_text(text: str) -> None:
    """Plain Burmese, Chinese, and ASCII text passes validation."""

    assert TextValidator().validate_input(text).valid is True


def test_sanitize_for_prompt_escapes_quote_breakers() -> None:
    """Backslashes, quotes, and newlines are escaped without double escaping."""

    escaped = sanitize_for_prompt('say "hi"\\\nnext\rline')

    assert escaped == 'say \\"hi\\"\\\\\\nnext\\rline'


def test_validate_output_trims_accepted_text() -> None:
    """Accepted output is returned trimmed."""

    result = TextValidator().validate_output("  你好！ \n")

    assert result.valid is True
    assert result.cleaned == "你好！"


@pytest.mark.parametrize(
    "text", [None, "", "   \n", "Error: upstream exploded", "AN ERROR OCCURRED"]
)
def test_validate_output_rejects_empty_or_error_shaped_text(text: str | None) -> None:
    """Blank output and text that looks like a leaked error is rejected."""

    result = TextValidator().validate_output(text)

    assert result.valid is False
    assert result.cleaned == ""


def test_validate_output_rejects_oversized_text() -> None:
    """Output longer than the configured bound is rejected after trimming."""

    validator = TextValidator(max_output_length=4)

    assert validator.validate_output("  abcd  ").valid is True
    assert validator.validate_output("abcde").valid is False


def test_fallback_exact_match_returns_phrase_verbatim() -> None:
    """An exact (trimmed) known phrase maps to its translation without suffix."""

    fallback = FallbackDictionary()

    assert fallback.lookup("ငွေထုတ်") == "提款 / Withdrawal"
    assert fallback.lookup("  ငွေထုတ်  ") == "提款 / Withdrawal"


def test_fallback_substring_match_marks_basic_translation() -> None:
    """A contained known phrase returns an approximate translation with the suffix."""

    fallback = FallbackDictionary()

    assert fallback.lookup("ကျွန်တော့်အကောင့်ကိုဖွင့်မရပါ") == f"账户 / Account {BASIC_SUFFIX}"


def test_fallback_returns_none_for_unknown_text() -> None:
    """Unrelated text has no fallback."""

    assert FallbackDictionary().lookup("hello world") is None


def test_fallback_accepts_custom_phrase_table() -> None:
    """A custom phrase table replaces the defaults."""

    fallback = FallbackDictionary({"hi": "你好"})

    assert len(fallback) == 1
    assert fallback.lookup("hi") == "你好"
    assert fallback.lookup("ငွေထုတ်") is None
