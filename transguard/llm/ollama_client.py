"""Ollama HTTP client for streaming chat translations.

Responsibilities:
- Open streaming `/api/chat` requests against a hosted Ollama endpoint.
- Decode newline-delimited JSON stream frames into assistant text pieces.
- Raise `UpstreamError` tagged with a failure kind for every request failure.
"""

from __future__ import annotations

from collections.abc import Iterator
import json
import re
from typing import Any

import requests

from ..errors import FailureKind, UpstreamError
from .classification import kind_from_message, kind_from_status, kind_from_transport

DEFAULT_OLLAMA_HOST = "https://ollama.com"
DEFAULT_TRANSLATION_MODEL = "gemini-3-flash-preview"


class ChatStream:
    """Iterator over assistant text pieces of one streaming chat response.

    Closing the stream releases the underlying HTTP connection; iteration is
    single-pass.
    """

    def __init__(self, response: requests.Response) -> None:
        self._response = response
        self.closed = False

    def __iter__(self) -> Iterator[str]:
        try:
            for raw_line in self._response.iter_lines(decode_unicode=False):
                if not raw_line:
                    continue
                frame = self._decode_frame(raw_line)
                if frame.get("error"):
                    message = OllamaChatClient._short_message(
                        OllamaChatClient._redact_sensitive_tokens(str(frame["error"]))
                    )
                    raise UpstreamError(
                        f"Ollama stream reported an error: {message}",
                        failure_kind=kind_from_message(message),
                        provider_message=message,
                    )
                content = self._frame_content(frame)
                if content:
                    yield content
                if frame.get("done") is True:
                    return
        except requests.RequestException as exc:
            raise UpstreamError(
                f"Ollama stream interrupted: {type(exc).__name__}",
                failure_kind=kind_from_transport(exc),
            ) from exc
        finally:
            self.close()

    def close(self) -> None:
        """Release the HTTP connection; safe to call more than once."""

        if not self.closed:
            self.closed = True
            self._response.close()

    def __enter__(self) -> ChatStream:
        return self

    def __exit__(self, *_: object) -> None:
        self.close()

    @staticmethod
    def _decode_frame(raw_line: bytes | str) -> dict[str, Any]:
        """Decode one NDJSON frame."""

        text = raw_line.decode("utf-8") if isinstance(raw_line, bytes) else raw_line
        try:
            frame = json.loads(text)
        except json.JSONDecodeError as exc:
            raise UpstreamError(
                "Ollama returned an invalid stream frame.",
                failure_kind=FailureKind.UNKNOWN,
            ) from exc
        if not isinstance(frame, dict):
            raise UpstreamError("Ollama stream frame is malformed.")
        return frame

    @staticmethod
    def _frame_content(frame: dict[str, Any]) -> str:
        message = frame.get("message")
        if not isinstance(message, dict):
            return ""
        content = message.get("content")
        return content if isinstance(content, str) else ""


class OllamaChatClient:
    """Minimal requests-based client for the Ollama chat endpoint."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        host: str = DEFAULT_OLLAMA_HOST,
        timeout_seconds: float = 60.0,
    ) -> None:
        """Initialize Ollama HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.host = host.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def open_chat_stream(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
    ) -> ChatStream:
        """Open a streaming chat request and return its text-piece iterator.

        Only connection setup and HTTP status are checked here; frame-level
        errors surface while iterating the returned stream.
        """

        self._require_api_key()
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": model, "messages": messages, "stream": True}
        try:
            response = requests.post(
                f"{self.host}/api/chat",
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
                stream=True,
            )
        except requests.RequestException as exc:
            failure_kind = kind_from_transport(exc)
            detail = (
                "Ollama request timed out."
                if failure_kind is FailureKind.TIMEOUT
                else f"Ollama request transport error: {type(exc).__name__}"
            )
            raise UpstreamError(detail, failure_kind=failure_kind) from exc

        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            response.close()
            raise self._http_error_to_upstream_error(exc) from exc
        return ChatStream(response)

    def _require_api_key(self) -> None:
        """Require API key presence before issuing requests."""

        if not self.api_key:
            raise UpstreamError(
                "Missing Ollama API key. Set `OLLAMA_API_KEY` or store one with "
                "`transguard credentials --set-api-key`.",
                failure_kind=FailureKind.AUTH,
            )

    @classmethod
    def _http_error_to_upstream_error(cls, exc: requests.HTTPError) -> UpstreamError:
        """Convert an HTTP error into a kind-tagged upstream error."""

        status_code = exc.response.status_code if exc.response is not None else 0
        provider_message = cls._extract_provider_message(cls._decode_error_body(exc))
        failure_kind = kind_from_status(status_code)
        if failure_kind in (None, FailureKind.UNKNOWN) and provider_message:
            failure_kind = kind_from_message(provider_message)
        if failure_kind is None:
            failure_kind = FailureKind.UNKNOWN

        headline = {
            FailureKind.AUTH: "Ollama authentication failed",
            FailureKind.QUOTA: "Ollama request quota exceeded",
            FailureKind.MODEL: "Ollama rejected the selected model",
            FailureKind.OVERLOADED: "Ollama service is unavailable",
            FailureKind.TIMEOUT: "Ollama request timed out",
        }.get(failure_kind, "Ollama request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."
        return UpstreamError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
            provider_message=provider_message or None,
        )

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 string."""

        response = exc.response
        if response is None:
            return ""
        try:
            return bytes(response.content).decode("utf-8", errors="replace").strip()
        except (requests.RequestException, TypeError, ValueError):
            return ""

    @classmethod
    def _extract_provider_message(cls, body: str) -> str:
        """Extract a concise, redacted provider message from an error body."""

        if not body:
            return ""
        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body))

        message: str | None = None
        if isinstance(payload, dict):
            error_value = payload.get("error")
            if isinstance(error_value, str) and error_value.strip():
                message = error_value.strip()
            elif isinstance(error_value, dict):
                nested = error_value.get("message")
                if isinstance(nested, str) and nested.strip():
                    message = nested.strip()
        if message is None:
            message = body
        return cls._short_message(cls._redact_sensitive_tokens(message))

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact bearer tokens and key-like strings from provider text."""

        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            text,
        )
        return re.sub(r"\b[A-Za-z0-9]{32,}\.[A-Za-z0-9_-]{8,}\b", "[redacted-key]", redacted)

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."
