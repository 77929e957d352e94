"""CLI output and error rendering helpers."""

from __future__ import annotations

from typing import NoReturn

import typer

from .errors import PipelineStageError
from .pipeline.messages import ERROR_PREFIX


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_settings_summary(summary: dict[str, str]) -> None:
    """Print non-secret settings in deterministic key order."""

    for key in sorted(summary):
        typer.echo(f"{key}: {summary[key]}")


def echo_stream_error(chunk: str) -> None:
    """Print an error chunk from the translation stream to stderr."""

    typer.secho(chunk[len(ERROR_PREFIX):].strip(), fg=typer.colors.RED, err=True)
