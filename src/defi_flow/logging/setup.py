"""Centralized logging setup for defi_flow."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Literal

from defi_flow.logging.json_formatter import StructuredJSONFormatter

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
JSON_LOGGER_NAME = "defi_flow"
JSON_LOG_FILENAME = "defi_flow.jsonl"

_MAX_BYTES = 10 * 1024 * 1024
_BACKUP_COUNT = 5


def _resolve_level(level: str | int) -> int:
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        return resolved if isinstance(resolved, int) else logging.INFO
    return level


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] | int = "INFO",
    *,
    log_dir: Path | None = None,
    json_logs: bool = False,
) -> None:
    """
    Configure console logging and, optionally, rotating JSON file logging.

    Safe to call repeatedly: handlers are only added once per target.

    Args:
        level: Root log level.
        log_dir: Directory for the rotating ``defi_flow.jsonl`` file.
        json_logs: Write structured JSON records to ``log_dir``.
    """

    logging_level = _resolve_level(level)
    root = logging.getLogger()
    root.setLevel(logging_level)

    console_handlers = [
        h
        for h in root.handlers
        if isinstance(h, logging.StreamHandler)
        and not isinstance(h, logging.FileHandler)
        and type(h).__name__ not in {"LogCaptureHandler", "_LiveLoggingNullHandler"}
    ]
    if not console_handlers:
        console = logging.StreamHandler()
        console.setFormatter(logging.Formatter(DEFAULT_FORMAT))
        root.addHandler(console)
    for handler in console_handlers:
        handler.setLevel(logging_level)

    if not json_logs or log_dir is None:
        return

    log_dir.mkdir(parents=True, exist_ok=True)
    json_path = str(log_dir / JSON_LOG_FILENAME)

    package_logger = logging.getLogger(JSON_LOGGER_NAME)
    existing_targets = {
        getattr(handler, "baseFilename", None) for handler in package_logger.handlers
    }
    if json_path in existing_targets:
        return

    json_handler = logging.handlers.RotatingFileHandler(
        json_path,
        maxBytes=_MAX_BYTES,
        backupCount=_BACKUP_COUNT,
    )
    json_handler.setLevel(logging.DEBUG)
    json_handler.setFormatter(StructuredJSONFormatter(sort_keys=True))
    package_logger.addHandler(json_handler)


__all__ = ["DEFAULT_FORMAT", "configure_logging"]
