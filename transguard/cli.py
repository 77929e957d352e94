"""Command-line interface for transguard.

Responsibilities:
- Expose translation, configuration check, and credential commands.
- Convert CLI arguments into validated `TranslatorSettings` and run the pipeline.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from .cli_rendering import echo_settings_summary, echo_stream_error, exit_with_command_error
from .config import ConfigLoader, RuntimeConfigSources, TranslatorSettings
from .credentials import create_credential_store
from .errors import PipelineStageError
from .parsing import normalize_optional_string
from .pipeline import TranslationPipeline
from .pipeline.messages import is_error_chunk
from .telemetry.logger import configure_logging

app = typer.Typer(
    name="transguard",
    no_args_is_help=True,
    help="Transguard translation pipeline CLI.",
)


def _load_settings(config_path: Path | None, api_key: str | None) -> TranslatorSettings:
    """Load settings from YAML or environment and map failures to stage errors."""

    try:
        if config_path is not None:
            settings = ConfigLoader.from_yaml(config_path, validate=False)
        else:
            settings = ConfigLoader.from_env(validate=False)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Fix environment variables or config values and rerun.",
        ) from exc

    cli_values: dict[str, str] = {}
    normalized_cli_key = normalize_optional_string(api_key)
    if normalized_cli_key is not None:
        cli_values["api_key"] = normalized_cli_key
    secure_values: dict[str, str] = {}
    if not cli_values:
        stored_key = create_credential_store().get_api_key()
        if stored_key is not None:
            secure_values["api_key"] = stored_key
    settings = settings.with_api_key(RuntimeConfigSources(cli=cli_values, secure=secure_values))

    try:
        settings.validate()
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid configuration: {exc}",
            hint="Set `OLLAMA_API_KEY`, pass `--api-key`, or run "
            "`transguard credentials --set-api-key`.",
        ) from exc
    return settings


@app.command("translate")
def translate_command(
    text: Annotated[str, typer.Argument(help="Text to translate.")],
    user_id: Annotated[
        str,
        typer.Option("--user-id", help="Stable user identity used for cooldown tracking."),
    ] = "cli-user",
    client_address: Annotated[
        str,
        typer.Option("--client-address", help="Originating client address for rate limiting."),
    ] = "127.0.0.1",
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="YAML settings file."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Upstream API key (overrides stored/env values)."),
    ] = None,
) -> None:
    """Translate text and stream the result to stdout."""

    try:
        settings = _load_settings(config_file, api_key)
    except PipelineStageError as exc:
        exit_with_command_error("translate", exc)

    configure_logging(settings.mode)
    pipeline = TranslationPipeline.from_settings(settings)
    emitted = False
    for chunk in pipeline.translate(text, user_id, client_address):
        if is_error_chunk(chunk):
            if emitted:
                typer.echo("")
            echo_stream_error(chunk)
            raise typer.Exit(code=1)
        typer.echo(chunk, nl=False)
        emitted = True
    typer.echo("")


@app.command("check-config")
def check_config_command(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="YAML settings file."),
    ] = None,
) -> None:
    """Validate configuration and print non-secret settings."""

    try:
        settings = _load_settings(config_file, None)
    except PipelineStageError as exc:
        exit_with_command_error("check-config", exc)
    echo_settings_summary(settings.as_summary())


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage the securely stored upstream API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            PipelineStageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "Ollama API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                PipelineStageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {type(exc).__name__}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Stored Ollama API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
