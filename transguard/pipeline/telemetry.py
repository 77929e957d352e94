"""Request-state telemetry helper methods for the translation pipeline.

Responsibilities:
- Name the per-request state sequence for transition logging.
- Count outcomes (cache hits, upstream calls, fallbacks, rejections) for diagnostics.
"""

from __future__ import annotations

from threading import Lock

from ..telemetry.logger import PipelineLogger


class PipelineTelemetryMixin:
    """Provide state-transition logging and outcome counters."""

    _STATE_SEQUENCE = (
        "received",
        "rate_checked",
        "input_validated",
        "cooldown_checked",
        "cache_lookup",
        "cache_hit",
        "upstream_call",
        "output_validating",
        "persisting",
        "fallback",
        "terminal",
    )
    _OUTCOMES = (
        "cache_hit",
        "upstream_success",
        "fallback",
        "rejected",
        "failed",
    )

    _logger: PipelineLogger

    def _reset_outcome_telemetry(self) -> None:
        """Reset outcome counters."""

        self._outcome_lock = Lock()
        self._outcome_counts = {outcome: 0 for outcome in self._OUTCOMES}

    def _record_outcome(self, outcome: str) -> None:
        """Increment one outcome counter."""

        with self._outcome_lock:
            self._outcome_counts[outcome] = self._outcome_counts.get(outcome, 0) + 1

    def _on_transition(self, state: str, request_id: str, **context: object) -> None:
        """Emit a transition event for a known request state."""

        if state not in self._STATE_SEQUENCE:
            raise ValueError(f"Unknown pipeline state `{state}`.")
        self._logger.transition(state, request_id=request_id, **context)

    def outcome_counts(self) -> dict[str, int]:
        """Return a snapshot of outcome counters."""

        with self._outcome_lock:
            return dict(self._outcome_counts)
