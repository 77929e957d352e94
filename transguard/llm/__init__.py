"""Upstream-facing components: chat client, retry policy, and throttling.

This package holds the streaming Ollama client, the retry executor, and the
per-client and per-user throttles that guard it.
"""

from .cooldown import CooldownGuard
from .ollama_client import ChatStream, OllamaChatClient
from .prompts import PromptLibrary
from .rate_limiter import RateLimiter
from .retry import RetryExecutor

__all__ = [
    "ChatStream",
    "CooldownGuard",
    "OllamaChatClient",
    "PromptLibrary",
    "RateLimiter",
    "RetryExecutor",
]
