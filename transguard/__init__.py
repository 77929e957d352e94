"""Top-level package for transguard.

This package wraps a hosted translation model in a resilient streaming
pipeline with rate limiting, cooldowns, caching, retries, and fallbacks. The
main entry point is `TranslationPipeline`.
"""

from .pipeline import TranslationPipeline

__all__ = ["TranslationPipeline", "__version__"]

__version__ = "0.1.0"
