"""Logging configuration utilities for hairswap.

Provides centralized logging configuration with:
- Output to stdout or a file
- Plain text or structured JSON records
- Context-aware loggers via LoggerAdapter
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# LogRecord attributes that are not user-supplied context
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "thread",
        "threadName",
        "exc_info",
        "exc_text",
        "stack_info",
        "taskName",
    }
)


class StructuredJSONFormatter(logging.Formatter):
    """Formatter that emits one JSON object per record.

    Format:
    {
        "level": "INFO",
        "message": "...",
        "timestamp": "2026-01-29T12:00:00+00:00",
        "context": {"logger_name": "...", "module": "...", ...extra fields...}
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        context: dict[str, Any] = {
            "logger_name": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            context["error_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
            context["error_message"] = str(record.exc_info[1]) if record.exc_info[1] else None
            context["stack_trace"] = record.exc_text or self.formatException(record.exc_info)

        # Extra fields from LoggerAdapter or extra= kwargs
        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                context[key] = value

        log_entry = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "context": context,
        }
        return json.dumps(log_entry, default=str)


def _suppress_noisy_loggers() -> None:
    for name in ("httpx", "httpcore", "openai", "asyncio", "PIL"):
        logging.getLogger(name).setLevel(logging.ERROR)


def configure_logging(
    level: str = "INFO",
    format_string: str | None = None,
    filename: str | None = None,
    structured: bool = False,
) -> None:
    """Configure application-wide logging.

    Can be called repeatedly; each call replaces the previous configuration.

    Args:
        level: Logging level name (case-insensitive)
        format_string: Text format. Ignored when structured=True.
        filename: Log file path. Logs to stdout when None.
        structured: Emit JSON records instead of text

    Examples:
        >>> configure_logging(level="DEBUG")
        >>> configure_logging(level="INFO", structured=True, filename="hairswap.jsonl")
    """
    handler: logging.Handler
    if filename:
        handler = logging.FileHandler(filename)
    else:
        handler = logging.StreamHandler(sys.stdout)

    formatter: logging.Formatter
    if structured:
        formatter = StructuredJSONFormatter()
    else:
        formatter = logging.Formatter(format_string or _DEFAULT_FORMAT)

    handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        handlers=[handler],
        force=True,
    )

    _suppress_noisy_loggers()


def get_logger(name: str, **kwargs: Any) -> logging.Logger | logging.LoggerAdapter:
    """Get a logger, wrapped in a LoggerAdapter when context is given.

    Args:
        name: Logger name (usually __name__)
        **kwargs: Context attached to every record (e.g. run_id, attempt)

    Returns:
        Logger, or LoggerAdapter if context was provided
    """
    logger = logging.getLogger(name)
    if kwargs:
        return logging.LoggerAdapter(logger, kwargs)
    return logger
