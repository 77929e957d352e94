"""Text validation and fallback phrase lookup."""

from .fallback import FallbackDictionary
from .validator import TextValidator, sanitize_for_prompt

__all__ = ["FallbackDictionary", "TextValidator", "sanitize_for_prompt"]
