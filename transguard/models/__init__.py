"""Data models for cache, throttling, and pipeline requests."""

from .datatypes import (
    CacheEntry,
    CooldownRecord,
    InputValidation,
    OutputValidation,
    PipelineRequest,
    RateCounter,
    RateLimitDecision,
    RetryState,
)

__all__ = [
    "CacheEntry",
    "CooldownRecord",
    "InputValidation",
    "OutputValidation",
    "PipelineRequest",
    "RateCounter",
    "RateLimitDecision",
    "RetryState",
]
