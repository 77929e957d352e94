"""Static fallback phrases used when the live translation cannot complete."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

BASIC_SUFFIX = "(အခြေခံ)"

DEFAULT_FALLBACK_PHRASES: Mapping[str, str] = MappingProxyType(
    {
        "ငွေထုတ်": "提款 / Withdrawal",
        "ငွေသွင်း": "存款 / Deposit",
        "လက်ကျန်ငွေ": "余额 / Balance",
        "အကောင့်": "账户 / Account",
        "ပြဿနာ": "问题 / Problem",
        "အကူအညီ": "帮助 / Help",
    }
)


class FallbackDictionary:
    """Exact and substring lookup over a small table of banking phrases."""

    def __init__(self, phrases: Mapping[str, str] | None = None) -> None:
        self._phrases = dict(DEFAULT_FALLBACK_PHRASES if phrases is None else phrases)

    def lookup(self, text: str) -> str | None:
        """Return a fallback translation for text, or `None` when no phrase applies.

        Exact matches on the trimmed text return the phrase as-is. Otherwise the
        first known phrase contained in the text returns an approximate
        translation marked with the basic suffix.
        """

        trimmed = text.strip()
        exact = self._phrases.get(trimmed)
        if exact is not None:
            return exact

        for phrase, translation in self._phrases.items():
            if phrase in text:
                return f"{translation} {BASIC_SUFFIX}"
        return None

    def __len__(self) -> int:
        return len(self._phrases)
