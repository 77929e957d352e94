"""Prompt template for the customer-service translation call."""

from __future__ import annotations


class PromptLibrary:
    """Build prompt strings for the Burmese <-> Chinese translator."""

    def translation_prompt(self, escaped_text: str) -> str:
        """Return the user prompt embedding already-escaped source text in quotes."""

        return (
            "You are an expert bilingual translator for customer service, specializing in "
            "natural, high-quality communication between Burmese (Myanmar) and Chinese.\n\n"
            "Rules:\n"
            "1. Identify the source language of the text (Burmese or Chinese).\n"
            "2. Translate it into the other language.\n"
            "3. Prefer the most natural, polite, and professional phrasing over a "
            "word-for-word translation.\n"
            "4. Return ONLY the final translation, with no labels, explanations, or the "
            "original text.\n\n"
            "Translate the following text:\n"
            f'"{escaped_text}"'
        )

    def translation_messages(self, escaped_text: str) -> list[dict[str, str]]:
        """Return chat messages for one translation request."""

        return [{"role": "user", "content": self.translation_prompt(escaped_text)}]
