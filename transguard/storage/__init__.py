"""Durable and process-local storage tiers."""

from .cache import CacheStore, LocalCacheTier, make_translation_key, normalize_source_text
from .kv_client import KVStore, RestKVClient, create_kv_client

__all__ = [
    "CacheStore",
    "KVStore",
    "LocalCacheTier",
    "RestKVClient",
    "create_kv_client",
    "make_translation_key",
    "normalize_source_text",
]
