"""Shared helpers for parsing, formatting and structured logging."""

from .logging_patterns import StructuredLogger, get_logger, log_operation, log_step_event
from .parsing import coerce_enum, format_balance, parse_decimal

__all__ = [
    "StructuredLogger",
    "coerce_enum",
    "format_balance",
    "get_logger",
    "log_operation",
    "log_step_event",
    "parse_decimal",
]
