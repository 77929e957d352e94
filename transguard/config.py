"""Configuration model and loaders for transguard.

Responsibilities:
- Define runtime settings as a typed dataclass with validation.
- Resolve the upstream API key with deterministic source precedence.
- Provide loader entry points for environment- and YAML-based configuration.

Key types:
- `TranslatorSettings`: validated settings for one pipeline process.
- `RuntimeConfigSources`: optional value sources for API key precedence.
- `ConfigLoader`: static construction helpers for `TranslatorSettings`.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .llm.ollama_client import DEFAULT_OLLAMA_HOST, DEFAULT_TRANSLATION_MODEL
from .parsing import (
    is_http_url,
    normalize_optional_string,
    parse_positive_float,
    parse_positive_int,
)

_SUPPORTED_MODES = ("development", "test", "production")


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for API key precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TranslatorSettings:
    """Validated runtime settings for the translation pipeline.

    Attributes:
        api_key: Upstream API credential (required).
        ollama_host: Base URL of the hosted Ollama API.
        model: Upstream model identifier.
        kv_url: Durable-tier REST URL; `None` disables the durable tier.
        kv_token: Durable-tier REST token.
        mode: Runtime mode (`development`, `test`, `production`), log verbosity only.
        max_retries: Retries beyond the first upstream attempt.
        base_delay_seconds: First backoff step.
        max_delay_seconds: Cap on each backoff step.
        cache_ttl_seconds: Translation cache expiry.
        cooldown_seconds: Minimum interval between a user's accepted translations.
        min_input_length: Inclusive lower bound on request text length.
        max_input_length: Inclusive upper bound on request text length.
        max_output_length: Upper bound on accepted upstream output length.
        rate_limit_window_seconds: Fixed rate-limit window length.
        rate_limit_max_requests: Requests allowed per address per window.
        upstream_timeout_seconds: Upstream HTTP timeout.
        kv_timeout_seconds: Durable-tier HTTP timeout.
    """

    api_key: str | None = None
    ollama_host: str = DEFAULT_OLLAMA_HOST
    model: str = DEFAULT_TRANSLATION_MODEL
    kv_url: str | None = None
    kv_token: str | None = None
    mode: str = "development"
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_delay_seconds: float = 10.0
    cache_ttl_seconds: int = 86400
    cooldown_seconds: float = 5.0
    min_input_length: int = 1
    max_input_length: int = 2000
    max_output_length: int = 5000
    rate_limit_window_seconds: int = 60
    rate_limit_max_requests: int = 20
    upstream_timeout_seconds: float = 60.0
    kv_timeout_seconds: float = 5.0

    @property
    def durable_tier_enabled(self) -> bool:
        """Return whether both durable-tier URL and token are configured."""

        return bool(self.kv_url and self.kv_token)

    def validate(self) -> None:
        """Validate settings; raise `ValueError` describing the first violation."""

        if normalize_optional_string(self.api_key) is None:
            raise ValueError("`OLLAMA_API_KEY` is required and must be non-empty.")
        if not is_http_url(self.ollama_host):
            raise ValueError("`ollama_host` must be an http(s) URL.")
        if normalize_optional_string(self.model) is None:
            raise ValueError("`model` must be a non-empty string.")
        if self.kv_url is not None and not is_http_url(self.kv_url):
            raise ValueError("`KV_REST_API_URL` must be an http(s) URL.")
        if self.mode not in _SUPPORTED_MODES:
            supported = ", ".join(_SUPPORTED_MODES)
            raise ValueError(f"Unsupported mode `{self.mode}`; supported: {supported}.")
        if self.max_retries < 0:
            raise ValueError("`max_retries` must be zero or a positive integer.")
        if self.base_delay_seconds > self.max_delay_seconds:
            raise ValueError("`base_delay_seconds` must not exceed `max_delay_seconds`.")
        if self.min_input_length > self.max_input_length:
            raise ValueError("`min_input_length` must not exceed `max_input_length`.")
        for name in (
            "base_delay_seconds",
            "max_delay_seconds",
            "cache_ttl_seconds",
            "cooldown_seconds",
            "min_input_length",
            "max_output_length",
            "rate_limit_window_seconds",
            "rate_limit_max_requests",
            "upstream_timeout_seconds",
            "kv_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"`{name}` must be positive.")

    def with_api_key(self, sources: RuntimeConfigSources) -> TranslatorSettings:
        """Return settings whose API key follows `cli` > `secure` > `env` > current value."""

        for mapping, key in (
            (sources.cli, "api_key"),
            (sources.secure, "api_key"),
            (sources.env, "OLLAMA_API_KEY"),
        ):
            value = normalize_optional_string(mapping.get(key)) if key in mapping else None
            if value is not None:
                return replace(self, api_key=value)
        return self

    def as_summary(self) -> dict[str, str]:
        """Return non-secret settings safe to print or log."""

        summary = {
            key: str(value)
            for key, value in asdict(self).items()
            if key not in {"api_key", "kv_token"}
        }
        summary["api_key"] = "set" if normalize_optional_string(self.api_key) else "missing"
        summary["kv_url"] = self.kv_url or "none"
        summary["durable_tier"] = "enabled" if self.durable_tier_enabled else "disabled"
        return summary


# Setting name -> (environment variable, parser).
_TUNABLE_FIELDS: dict[str, tuple[str, str]] = {
    "max_retries": ("TRANSGUARD_MAX_RETRIES", "int0"),
    "base_delay_seconds": ("TRANSGUARD_BASE_DELAY_SECONDS", "float"),
    "max_delay_seconds": ("TRANSGUARD_MAX_DELAY_SECONDS", "float"),
    "cache_ttl_seconds": ("TRANSGUARD_CACHE_TTL_SECONDS", "int"),
    "cooldown_seconds": ("TRANSGUARD_COOLDOWN_SECONDS", "float"),
    "min_input_length": ("TRANSGUARD_MIN_INPUT_LENGTH", "int"),
    "max_input_length": ("TRANSGUARD_MAX_INPUT_LENGTH", "int"),
    "max_output_length": ("TRANSGUARD_MAX_OUTPUT_LENGTH", "int"),
    "rate_limit_window_seconds": ("TRANSGUARD_RATE_LIMIT_WINDOW_SECONDS", "int"),
    "rate_limit_max_requests": ("TRANSGUARD_RATE_LIMIT_MAX_REQUESTS", "int"),
    "upstream_timeout_seconds": ("TRANSGUARD_UPSTREAM_TIMEOUT_SECONDS", "float"),
    "kv_timeout_seconds": ("TRANSGUARD_KV_TIMEOUT_SECONDS", "float"),
}
_STRING_FIELDS: dict[str, str] = {
    "ollama_host": "TRANSGUARD_OLLAMA_HOST",
    "model": "TRANSGUARD_MODEL",
    "mode": "TRANSGUARD_ENV",
}


class ConfigLoader:
    """Factory methods for creating `TranslatorSettings` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {"api_key", "kv_url", "kv_token", *_TUNABLE_FIELDS, *_STRING_FIELDS}
    )

    @staticmethod
    def from_env(
        env: Mapping[str, str] | None = None,
        *,
        validate: bool = True,
    ) -> TranslatorSettings:
        """Create settings from environment variables.

        `KV_REST_API_*` take precedence over `UPSTASH_REDIS_REST_*`.
        """

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}

        api_key = ConfigLoader._optional_env_string(env_map, "OLLAMA_API_KEY")
        if api_key is not None:
            payload["api_key"] = api_key
        kv_url = ConfigLoader._optional_env_string(
            env_map, "KV_REST_API_URL"
        ) or ConfigLoader._optional_env_string(env_map, "UPSTASH_REDIS_REST_URL")
        kv_token = ConfigLoader._optional_env_string(
            env_map, "KV_REST_API_TOKEN"
        ) or ConfigLoader._optional_env_string(env_map, "UPSTASH_REDIS_REST_TOKEN")
        if kv_url is not None:
            payload["kv_url"] = kv_url
        if kv_token is not None:
            payload["kv_token"] = kv_token

        for name, env_key in _STRING_FIELDS.items():
            value = ConfigLoader._optional_env_string(env_map, env_key)
            if value is not None:
                payload[name] = value
        for name, (env_key, _) in _TUNABLE_FIELDS.items():
            value = ConfigLoader._optional_env_string(env_map, env_key)
            if value is not None:
                payload[name] = value

        settings = ConfigLoader._build_settings(payload, source_label="environment")
        if validate:
            settings.validate()
        return settings

    @staticmethod
    def from_yaml(
        path: Path,
        env: Mapping[str, str] | None = None,
        *,
        validate: bool = True,
    ) -> TranslatorSettings:
        """Create settings from a YAML file, with environment values filling gaps.

        Secrets may be omitted from the file and supplied through the environment.
        """

        payload = ConfigLoader._parse_yaml_payload(path.read_text(encoding="utf-8"), path)
        unknown = sorted(
            str(key) for key in payload if key not in ConfigLoader._SUPPORTED_YAML_KEYS
        )
        if unknown:
            raise ValueError(f"YAML `{path}` has unsupported keys: {', '.join(unknown)}.")

        base = ConfigLoader.from_env(env, validate=False)
        merged = {key: value for key, value in asdict(base).items() if value is not None}
        merged.update({key: value for key, value in payload.items() if value is not None})
        settings = ConfigLoader._build_settings(merged, source_label=f"YAML `{path}`")
        if validate:
            settings.validate()
        return settings

    @staticmethod
    def _build_settings(payload: Mapping[str, Any], source_label: str) -> TranslatorSettings:
        """Parse typed fields from a raw mapping and build settings."""

        values: dict[str, Any] = {}
        for name in ("api_key", "kv_url", "kv_token", *_STRING_FIELDS):
            if name in payload:
                values[name] = normalize_optional_string(payload[name])
        values = {key: value for key, value in values.items() if value is not None}

        for name, (_, kind) in _TUNABLE_FIELDS.items():
            if name not in payload:
                continue
            label = f"{source_label} field `{name}`"
            if kind == "float":
                values[name] = parse_positive_float(payload[name], label)
            else:
                values[name] = parse_positive_int(payload[name], label, allow_zero=kind == "int0")
        return TranslatorSettings(**values)

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc
        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _optional_env_string(env: Mapping[str, str], key: str) -> str | None:
        """Read and normalize optional string environment variable values."""

        if key not in env:
            return None
        return normalize_optional_string(env.get(key))
