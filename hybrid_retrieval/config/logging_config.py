"""
Logging setup for the retrieval engine.

Modules log through ``logging.getLogger(__name__)``; this helper only attaches
a handler to the package logger. Building the engine never calls it; a host
without its own logging setup calls
``configure_logging(settings.log_level, settings.log_structured)`` once.
Log sites pass ``uri``, ``operation`` and ``batch_index`` through ``extra``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO

PACKAGE_LOGGER = "hybrid_retrieval"

# Extra fields picked up from ``logger.info(..., extra={...})``
_CONTEXT_FIELDS = ("uri", "operation", "batch_index")


class StructuredFormatter(logging.Formatter):
    """Formatter that outputs one JSON object per log line."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self.include_timestamp:
            log_entry["timestamp"] = datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat()

        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Format: TIMESTAMP - LOGGER - LEVEL - MESSAGE [uri=X operation=Y]
    """

    def __init__(self, include_timestamp: bool = True):
        if include_timestamp:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        else:
            fmt = "%(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt)

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context_parts = [
            f"{name}={getattr(record, name)}"
            for name in _CONTEXT_FIELDS
            if getattr(record, name, None) is not None
        ]
        if context_parts:
            return f"{base} [{' '.join(context_parts)}]"
        return base


def configure_logging(
    level: int | str = logging.INFO,
    structured: bool = False,
    include_timestamp: bool = True,
    stream: IO[str] | None = None,
) -> logging.Logger:
    """
    Attach a stream handler to the package logger.

    Calling it again only updates the level (no duplicate handlers).

    Example:
        >>> configure_logging(level="DEBUG", structured=True)
    """
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    pkg_logger.setLevel(level)

    if not pkg_logger.handlers:
        handler = logging.StreamHandler(stream or sys.stderr)
        if structured:
            handler.setFormatter(StructuredFormatter(include_timestamp=include_timestamp))
        else:
            handler.setFormatter(HumanReadableFormatter(include_timestamp=include_timestamp))
        pkg_logger.addHandler(handler)

    for handler in pkg_logger.handlers:
        handler.setLevel(level)
    return pkg_logger
