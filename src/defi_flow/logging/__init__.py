"""Logging configuration and structured formatting for ``defi_flow``."""

from .correlation import correlation_context, get_log_context, step_context
from .json_formatter import StructuredJSONFormatter
from .setup import configure_logging

__all__ = [
    "StructuredJSONFormatter",
    "configure_logging",
    "correlation_context",
    "get_log_context",
    "step_context",
]
