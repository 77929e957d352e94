"""Durable key/value tier client for a Redis REST endpoint.

Responsibilities:
- Send single Redis commands to an Upstash/Vercel-KV compatible REST API.
- Serialize stored values as JSON text and decode them on read.
- Raise `StorageUnavailableError` for every transport, HTTP, or payload failure.

Key types:
- `KVStore`: protocol implemented by durable-tier clients and test doubles.
- `RestKVClient`: requests-based REST implementation.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import requests

from ..errors import StorageUnavailableError


class KVStore(Protocol):
    """Durable-tier operations used by the cache and rate limiter."""

    def get(self, key: str) -> Any | None:
        """Return the decoded value for key, or `None` when absent."""

    def set(self, key: str, value: Any, ex_seconds: int | None = None) -> None:
        """Store a JSON-serializable value with an optional expiry."""

    def incr(self, key: str) -> int:
        """Atomically increment a counter and return the new value."""

    def expire(self, key: str, seconds: int) -> bool:
        """Set a key expiry and return whether the key existed."""

    def ttl(self, key: str) -> int:
        """Return remaining seconds to live, `-1` without expiry, `-2` when missing."""


class RestKVClient:
    """Minimal requests-based client for the Redis REST command endpoint."""

    def __init__(self, *, url: str, token: str, timeout_seconds: float = 5.0) -> None:
        self.url = url.rstrip("/")
        self.token = token.strip()
        self.timeout_seconds = timeout_seconds

    def command(self, *args: object) -> Any:
        """Execute one Redis command and return its `result` payload."""

        operation = str(args[0]).upper() if args else "?"
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
        }
        try:
            response = requests.post(
                self.url,
                headers=headers,
                json=[str(arg) for arg in args],
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as exc:
            status_code = exc.response.status_code if exc.response is not None else 0
            raise StorageUnavailableError(
                f"KV command {operation} failed (HTTP {status_code})."
            ) from exc
        except requests.RequestException as exc:
            raise StorageUnavailableError(
                f"KV command {operation} transport error: {type(exc).__name__}"
            ) from exc
        except ValueError as exc:
            raise StorageUnavailableError(
                f"KV command {operation} returned invalid JSON."
            ) from exc

        if not isinstance(payload, dict):
            raise StorageUnavailableError(f"KV command {operation} returned malformed payload.")
        if payload.get("error"):
            raise StorageUnavailableError(
                f"KV command {operation} rejected: {payload['error']}"
            )
        return payload.get("result")

    def get(self, key: str) -> Any | None:
        """Return the JSON-decoded value stored at key, or `None` when absent."""

        raw = self.command("GET", key)
        if raw is None:
            return None
        if not isinstance(raw, str):
            return raw
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    def set(self, key: str, value: Any, ex_seconds: int | None = None) -> None:
        """Store value as JSON text with an optional `EX` expiry."""

        encoded = json.dumps(value, ensure_ascii=False)
        if ex_seconds is not None:
            self.command("SET", key, encoded, "EX", int(ex_seconds))
            return
        self.command("SET", key, encoded)

    def incr(self, key: str) -> int:
        """Atomically increment the counter at key."""

        return int(self.command("INCR", key))

    def expire(self, key: str, seconds: int) -> bool:
        """Set key expiry in seconds."""

        return int(self.command("EXPIRE", key, int(seconds))) == 1

    def ttl(self, key: str) -> int:
        """Return the key's remaining time to live in seconds."""

        return int(self.command("TTL", key))


def create_kv_client(
    url: str | None,
    token: str | None,
    timeout_seconds: float = 5.0,
) -> RestKVClient | None:
    """Create a durable-tier client, or `None` when the tier is not configured."""

    if not url or not token:
        return None
    return RestKVClient(url=url, token=token, timeout_seconds=timeout_seconds)
