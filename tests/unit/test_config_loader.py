"""Unit tests for settings loading, validation, and API key precedence."""

from __future__ import annotations

from pathlib import Path

import pytest

from transguard.config import ConfigLoader, RuntimeConfigSources, TranslatorSettings


def test_from_env_applies_defaults_and_reads_secrets() -> None:
    """Only the API key is required; tunables default to documented values."""

    settings = ConfigLoader.from_env({"OLLAMA_API_KEY": " key-1 "})

    assert settings.api_key == "key-1"
    assert settings.max_retries == 3
    assert settings.base_delay_seconds == 1.0
    assert settings.max_delay_seconds == 10.0
    assert settings.cache_ttl_seconds == 86400
    assert settings.cooldown_seconds == 5.0
    assert (settings.min_input_length, settings.max_input_length) == (1, 2000)
    assert settings.max_output_length == 5000
    assert settings.rate_limit_window_seconds == 60
    assert settings.rate_limit_max_requests == 20
    assert settings.durable_tier_enabled is False


def test_from_env_prefers_kv_rest_over_upstash_names() -> None:
    """`KV_REST_API_*` wins; `UPSTASH_REDIS_REST_*` fills gaps."""

    settings = ConfigLoader.from_env(
        {
            "OLLAMA_API_KEY": "k",
            "KV_REST_API_URL": "https://kv.example",
            "UPSTASH_REDIS_REST_URL": "https://upstash.example",
            "UPSTASH_REDIS_REST_TOKEN": "upstash-token",
        }
    )

    assert settings.kv_url == "https://kv.example"
    assert settings.kv_token == "upstash-token"
    assert settings.durable_tier_enabled is True


def test_from_env_parses_tunables_and_mode() -> None:
    """Prefixed environment variables override defaults."""

    settings = ConfigLoader.from_env(
        {
            "OLLAMA_API_KEY": "k",
            "TRANSGUARD_ENV": "production",
            "TRANSGUARD_MODEL": "other-model",
            "TRANSGUARD_MAX_RETRIES": "0",
            "TRANSGUARD_COOLDOWN_SECONDS": "2.5",
            "TRANSGUARD_RATE_LIMIT_MAX_REQUESTS": "7",
        }
    )

    assert settings.mode == "production"
    assert settings.model == "other-model"
    assert settings.max_retries == 0
    assert settings.cooldown_seconds == 2.5
    assert settings.rate_limit_max_requests == 7


@pytest.mark.parametrize(
    ("env", "message"),
    [
        ({}, "OLLAMA_API_KEY"),
        ({"OLLAMA_API_KEY": "k", "TRANSGUARD_ENV": "staging"}, "Unsupported mode"),
        ({"OLLAMA_API_KEY": "k", "TRANSGUARD_MAX_RETRIES": "-1"}, "max_retries"),
        ({"OLLAMA_API_KEY": "k", "TRANSGUARD_COOLDOWN_SECONDS": "zero"}, "cooldown_seconds"),
        ({"OLLAMA_API_KEY": "k", "KV_REST_API_URL": "redis://kv"}, "KV_REST_API_URL"),
        (
            {
                "OLLAMA_API_KEY": "k",
                "TRANSGUARD_BASE_DELAY_SECONDS": "20",
                "TRANSGUARD_MAX_DELAY_SECONDS": "10",
            },
            "base_delay_seconds",
        ),
    ],
)
def test_from_env_rejects_invalid_values(env: dict[str, str], message: str) -> None:
    """Invalid environment values fail with a descriptive `ValueError`."""

    with pytest.raises(ValueError, match=message):
        ConfigLoader.from_env(env)


def test_from_yaml_merges_file_over_environment(tmp_path: Path) -> None:
    """YAML values override environment values; secrets can stay in the environment."""

    config_path = tmp_path / "transguard.yaml"
    config_path.write_text(
        "mode: test\ncooldown_seconds: 1\nrate_limit_max_requests: 3\n",
        encoding="utf-8",
    )

    settings = ConfigLoader.from_yaml(
        config_path,
        env={"OLLAMA_API_KEY": "env-key", "TRANSGUARD_RATE_LIMIT_MAX_REQUESTS": "9"},
    )

    assert settings.api_key == "env-key"
    assert settings.mode == "test"
    assert settings.cooldown_seconds == 1.0
    assert settings.rate_limit_max_requests == 3


def test_from_yaml_rejects_unknown_keys_and_bad_roots(tmp_path: Path) -> None:
    """Unsupported keys and non-mapping documents are configuration errors."""

    unknown = tmp_path / "unknown.yaml"
    unknown.write_text("api_key: k\nvoice: alloy\n", encoding="utf-8")
    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n", encoding="utf-8")
    broken = tmp_path / "broken.yaml"
    broken.write_text("mode: [unclosed\n", encoding="utf-8")

    with pytest.raises(ValueError, match="unsupported keys: voice"):
        ConfigLoader.from_yaml(unknown, env={})
    with pytest.raises(ValueError, match="top-level mapping"):
        ConfigLoader.from_yaml(listing, env={})
    with pytest.raises(ValueError, match="could not be parsed"):
        ConfigLoader.from_yaml(broken, env={})


def test_with_api_key_precedence_cli_secure_env() -> None:
    """CLI beats secure storage, which beats the environment."""

    base = TranslatorSettings()

    assert (
        base.with_api_key(
            RuntimeConfigSources(
                cli={"api_key": "cli"},
                secure={"api_key": "secure"},
                env={"OLLAMA_API_KEY": "env"},
            )
        ).api_key
        == "cli"
    )
    assert (
        base.with_api_key(
            RuntimeConfigSources(secure={"api_key": "secure"}, env={"OLLAMA_API_KEY": "env"})
        ).api_key
        == "secure"
    )
    assert base.with_api_key(RuntimeConfigSources(env={"OLLAMA_API_KEY": "env"})).api_key == "env"
    assert base.with_api_key(RuntimeConfigSources(cli={"api_key": "  "})).api_key is None


def test_as_summary_masks_secrets() -> None:
    """Summaries never include the API key or durable-tier token."""

    summary = TranslatorSettings(
        api_key="secret-key",
        kv_url="https://kv.example",
        kv_token="secret-token",
    ).as_summary()

    assert summary["api_key"] == "set"
    assert summary["durable_tier"] == "enabled"
    assert "kv_token" not in summary
    assert "secret-key" not in summary.values()
    assert "secret-token" not in summary.values()
