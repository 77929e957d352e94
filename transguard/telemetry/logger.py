"""Structured pipeline logging utilities.

Responsibilities:
- Emit concise, deterministic event lines through `loguru`.
- Map the runtime mode to a log verbosity level.
- Keep secrets and raw payloads out of log context values.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger

_MODE_LEVELS = {
    "development": "DEBUG",
    "test": "WARNING",
    "production": "INFO",
}


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


def level_for_mode(mode: str) -> str:
    """Return the log level used for a runtime mode."""

    return _MODE_LEVELS.get(mode, "INFO")


def configure_logging(mode: str = "development", sink: TextIO | None = None) -> int:
    """Replace loguru sinks with one plain sink filtered by runtime mode.

    Returns:
        The loguru handler id of the added sink.
    """

    logger.remove()
    return logger.add(
        sink or sys.stderr,
        format="{message}",
        level=level_for_mode(mode),
        colorize=False,
    )


def log_event(level: str, stage: str, event: str, **context: object) -> None:
    """Emit one structured pipeline log line."""

    line = f"[pipeline] level={level} stage={stage} event={event}{_format_context(context)}"
    logger.log(level, line)


class PipelineLogger:
    """Emit per-request state transitions and failures for one pipeline instance."""

    def __init__(self, component: str = "pipeline") -> None:
        self._component = component

    def transition(self, state: str, **context: object) -> None:
        """Emit a debug-level state transition event."""

        log_event("DEBUG", state, "enter", component=self._component, **context)

    def info(self, stage: str, event: str, **context: object) -> None:
        """Emit an info-level event."""

        log_event("INFO", stage, event, component=self._component, **context)

    def warning(self, stage: str, event: str, **context: object) -> None:
        """Emit a warning-level event."""

        log_event("WARNING", stage, event, component=self._component, **context)

    def failure(self, stage: str, exc: BaseException, **context: object) -> None:
        """Emit an error event with the exception type and failure kind, never its text."""

        failure_kind = getattr(exc, "failure_kind", None)
        status_code = getattr(exc, "status_code", None)
        log_event(
            "ERROR",
            stage,
            "failure",
            component=self._component,
            error_type=type(exc).__name__,
            failure_kind=getattr(failure_kind, "value", failure_kind) or "none",
            status=status_code if status_code is not None else "none",
            **context,
        )
