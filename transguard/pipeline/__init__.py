"""Translation pipeline orchestration and user-facing messages."""

from .messages import ERROR_PREFIX, is_error_chunk
from .orchestrator import TranslationPipeline, resolve_client_address

__all__ = ["ERROR_PREFIX", "TranslationPipeline", "is_error_chunk", "resolve_client_address"]
