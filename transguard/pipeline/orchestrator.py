"""Translation pipeline orchestration.

Responsibilities:
- Gate each request through rate limiting, input validation, and cooldown.
- Serve repeated source texts from the two-tier cache.
- Drive the upstream streaming call through the retry executor and forward
  chunks as they arrive.
- Validate accumulated output, then persist cache and cooldown concurrently.
- Resolve every failure to an error chunk, consulting the fallback dictionary first.

Key types:
- `TranslationPipeline`: top-level entry point returning a chunk generator.
- `ChatBackend`: protocol for the streaming upstream client.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from concurrent.futures import ThreadPoolExecutor
from typing import Protocol
import uuid

from ..config import TranslatorSettings
from ..errors import FailureKind, InvalidInputError, ThrottledError
from ..llm.classification import classify_failure
from ..llm.cooldown import CooldownGuard
from ..llm.ollama_client import DEFAULT_TRANSLATION_MODEL, OllamaChatClient
from ..llm.prompts import PromptLibrary
from ..llm.rate_limiter import RateLimiter
from ..llm.retry import RetryExecutor
from ..models.datatypes import PipelineRequest
from ..storage.cache import CacheStore, make_translation_key
from ..storage.kv_client import create_kv_client
from ..telemetry.logger import PipelineLogger
from ..text.fallback import FallbackDictionary
from ..text.validator import TextValidator
from .messages import (
    INVALID_REQUEST,
    INVALID_RESPONSE,
    RATE_LIMITED,
    cooldown_message,
    error_chunk,
    message_for_kind,
)
from .telemetry import PipelineTelemetryMixin

DEFAULT_CLIENT_ADDRESS = "127.0.0.1"
DEFAULT_CACHE_TTL_SECONDS = 24 * 60 * 60


class UpstreamStream(Protocol):
    """Closeable iterable of upstream text pieces."""

    def __iter__(self) -> Iterator[str]:
        """Yield text pieces in arrival order."""

    def close(self) -> None:
        """Release the upstream connection."""


class ChatBackend(Protocol):
    """Streaming chat client used for the upstream translation call."""

    def open_chat_stream(
        self,
        *,
        model: str,
        messages: list[dict[str, str]],
    ) -> UpstreamStream:
        """Open one streaming chat request."""


def resolve_client_address(headers: Mapping[str, str] | None) -> str:
    """Return the originating address from `x-forwarded-for`, defaulting to loopback."""

    if not headers:
        return DEFAULT_CLIENT_ADDRESS
    for name, value in headers.items():
        if name.lower() == "x-forwarded-for" and value:
            first_hop = value.split(",")[0].strip()
            if first_hop:
                return first_hop
    return DEFAULT_CLIENT_ADDRESS


class TranslationPipeline(PipelineTelemetryMixin):
    """Resilient streaming translation around a single upstream chat call."""

    def __init__(
        self,
        *,
        chat_client: ChatBackend,
        cache: CacheStore,
        rate_limiter: RateLimiter,
        cooldown: CooldownGuard,
        retry: RetryExecutor | None = None,
        validator: TextValidator | None = None,
        fallback: FallbackDictionary | None = None,
        prompts: PromptLibrary | None = None,
        model: str = DEFAULT_TRANSLATION_MODEL,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL_SECONDS,
        request_id_factory: Callable[[], str] | None = None,
    ) -> None:
        """Initialize the pipeline with injected collaborators."""

        self._chat_client = chat_client
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._cooldown = cooldown
        self._retry = retry if retry is not None else RetryExecutor()
        self._validator = validator if validator is not None else TextValidator()
        self._fallback = fallback if fallback is not None else FallbackDictionary()
        self._prompts = prompts if prompts is not None else PromptLibrary()
        self._model = model
        self._cache_ttl_seconds = cache_ttl_seconds
        self._request_id_factory = request_id_factory or (lambda: uuid.uuid4().hex[:12])
        self._logger = PipelineLogger("pipeline")
        self._reset_outcome_telemetry()

    @classmethod
    def from_settings(cls, settings: TranslatorSettings) -> TranslationPipeline:
        """Build a pipeline wired to the configured upstream and durable tier."""

        settings.validate()
        kv_client = create_kv_client(
            settings.kv_url,
            settings.kv_token,
            timeout_seconds=settings.kv_timeout_seconds,
        )
        cache = CacheStore(durable=kv_client)
        return cls(
            chat_client=OllamaChatClient(
                api_key=settings.api_key,
                host=settings.ollama_host,
                timeout_seconds=settings.upstream_timeout_seconds,
            ),
            cache=cache,
            rate_limiter=RateLimiter(
                store=kv_client,
                window_seconds=settings.rate_limit_window_seconds,
                max_requests=settings.rate_limit_max_requests,
            ),
            cooldown=CooldownGuard(cache=cache, cooldown_seconds=settings.cooldown_seconds),
            retry=RetryExecutor(
                max_retries=settings.max_retries,
                base_delay_seconds=settings.base_delay_seconds,
                max_delay_seconds=settings.max_delay_seconds,
            ),
            validator=TextValidator(
                min_input_length=settings.min_input_length,
                max_input_length=settings.max_input_length,
                max_output_length=settings.max_output_length,
            ),
            model=settings.model,
            cache_ttl_seconds=settings.cache_ttl_seconds,
        )

    @property
    def cache(self) -> CacheStore:
        """Return the cache shared by translation and cooldown records."""

        return self._cache

    def translate(
        self,
        query: str,
        user_id: str,
        client_address: str = DEFAULT_CLIENT_ADDRESS,
    ) -> Iterator[str]:
        """Translate query and return a lazy, single-pass stream of text chunks.

        The stream either yields translated text and closes normally, or ends
        with one chunk starting with `"Error: "`. Closing the stream early
        releases the upstream connection.
        """

        return self.translate_request(
            PipelineRequest(query=query, user_id=user_id, client_address=client_address)
        )

    def translate_request(self, request: PipelineRequest) -> Iterator[str]:
        """Translate one request; see `translate`."""

        request_id = self._request_id_factory()
        try:
            yield from self._run(request, request_id)
        except Exception as exc:
            self._logger.failure("terminal", exc, request_id=request_id)
            self._record_outcome("failed")
            yield error_chunk(message_for_kind(FailureKind.UNKNOWN))
        finally:
            self._cache.cleanup()
            self._on_transition("terminal", request_id)

    def _run(self, request: PipelineRequest, request_id: str) -> Iterator[str]:
        """Run the request state machine, yielding output or error chunks."""

        self._on_transition("received", request_id)
        source_text = (request.query or "").strip()
        user_id = (request.user_id or "").strip()
        if not source_text or not user_id:
            self._record_outcome("rejected")
            yield error_chunk(INVALID_REQUEST)
            return

        try:
            self._admit(source_text, user_id, request.client_address, request_id)
        except (InvalidInputError, ThrottledError) as exc:
            context: dict[str, object] = {"reason": exc.failure_kind.value}
            if isinstance(exc, ThrottledError) and exc.retry_after_seconds > 0:
                context["retry_after_ms"] = round(exc.retry_after_seconds * 1000)
            self._logger.info("admission", "rejected", request_id=request_id, **context)
            self._record_outcome("rejected")
            yield error_chunk(str(exc))
            return

        self._on_transition("cache_lookup", request_id)
        cache_key = make_translation_key(source_text)
        cached = self._cache.get(cache_key)
        if isinstance(cached, str) and cached:
            self._on_transition("cache_hit", request_id)
            self._record_outcome("cache_hit")
            self._cooldown.touch(user_id)
            yield cached
            return

        yield from self._translate_upstream(source_text, user_id, cache_key, request_id)

    def _admit(self, source_text: str, user_id: str, client_address: str, request_id: str) -> None:
        """Apply rate-limit, input, and cooldown gates in order.

        Raises:
            ThrottledError: When the client or user must wait.
            InvalidInputError: When the text violates validation rules.
        """

        decision = self._rate_limiter.check(client_address or DEFAULT_CLIENT_ADDRESS)
        if not decision.allowed:
            raise ThrottledError(RATE_LIMITED)
        self._on_transition("rate_checked", request_id, remaining=decision.remaining)

        validation = self._validator.validate_input(source_text)
        if not validation.valid:
            raise InvalidInputError(validation.error_reason or INVALID_REQUEST)
        self._on_transition("input_validated", request_id, chars=len(source_text))

        remaining = self._cooldown.remaining(user_id)
        if remaining > 0:
            raise ThrottledError(cooldown_message(remaining), retry_after_seconds=remaining)
        self._on_transition("cooldown_checked", request_id)

    def _translate_upstream(
        self,
        source_text: str,
        user_id: str,
        cache_key: str,
        request_id: str,
    ) -> Iterator[str]:
        """Stream the upstream translation, then validate and persist it."""

        self._on_transition("upstream_call", request_id, model=self._model)
        messages = self._prompts.translation_messages(
            self._validator.sanitize_for_prompt(source_text)
        )
        pieces: list[str] = []
        stream: UpstreamStream | None = None
        try:
            stream = self._retry.run(
                lambda: self._chat_client.open_chat_stream(model=self._model, messages=messages),
                operation_name="chat_stream",
            )
            for piece in stream:
                if not piece:
                    continue
                pieces.append(piece)
                yield piece
        except Exception as exc:
            kind = classify_failure(exc)
            self._logger.failure("upstream_call", exc, request_id=request_id)
            if pieces:
                self._record_outcome("failed")
                yield error_chunk(message_for_kind(kind))
                return
            yield self._fallback_or_error(source_text, kind, request_id)
            return
        finally:
            if stream is not None:
                stream.close()

        self._on_transition("output_validating", request_id, chars=sum(map(len, pieces)))
        validation = self._validator.validate_output("".join(pieces))
        if not validation.valid:
            self._logger.warning("output_validating", "rejected", request_id=request_id)
            if pieces:
                self._record_outcome("failed")
                yield error_chunk(INVALID_RESPONSE)
                return
            yield self._fallback_or_error(source_text, FailureKind.INVALID_OUTPUT, request_id)
            return

        self._on_transition("persisting", request_id)
        self._persist(cache_key, validation.cleaned, user_id, request_id)
        self._record_outcome("upstream_success")

    def _persist(self, cache_key: str, translation: str, user_id: str, request_id: str) -> None:
        """Write the cache entry and cooldown concurrently; log, never raise, failures."""

        tasks: Iterable[tuple[str, Callable[[], None]]] = (
            (
                "cache_write",
                lambda: self._cache.set(cache_key, translation, self._cache_ttl_seconds),
            ),
            ("cooldown_touch", lambda: self._cooldown.touch(user_id)),
        )
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="transguard-persist") as pool:
            futures = {pool.submit(action): name for name, action in tasks}
        for future, name in futures.items():
            exc = future.exception()
            if exc is not None:
                self._logger.failure(name, exc, request_id=request_id)

    def _fallback_or_error(self, source_text: str, kind: FailureKind, request_id: str) -> str:
        """Return a fallback phrase for the source text, or a category error chunk."""

        self._on_transition("fallback", request_id, failure_kind=kind.value)
        fallback = self._fallback.lookup(source_text)
        if fallback is not None:
            self._logger.info("fallback", "used", request_id=request_id)
            self._record_outcome("fallback")
            return fallback
        self._record_outcome("failed")
        return error_chunk(message_for_kind(kind))
