"""Logging helpers for pipeline diagnostics."""

from .logger import PipelineLogger, configure_logging, level_for_mode, log_event

__all__ = ["PipelineLogger", "configure_logging", "level_for_mode", "log_event"]
