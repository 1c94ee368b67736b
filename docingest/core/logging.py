"""
Logging Configuration

Structured logging setup for the CLI and the HTTP service.
Outputs to stdout so container log drivers pick it up.

Formats (LOG_FORMAT):
    default  Timestamp | Level | Module | Message
    simple   Message only
    json     One JSON object per line, with source file, line and function
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.config import dictConfig
from typing import Any

from docingest.core.config import settings
from docingest.core.errors import ConfigurationError

LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

LOG_FORMATS: dict[str, str] = {
    "default": "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    "simple": "%(message)s",
}


class JsonFormatter(logging.Formatter):
    """Render each record as a single-line JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "source": {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            },
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter_config(format_name: str) -> dict[str, Any]:
    if format_name == "json":
        return {"()": JsonFormatter}
    return {
        "format": LOG_FORMATS.get(format_name, LOG_FORMATS["default"]),
        "datefmt": "%Y-%m-%d %H:%M:%S",
    }


def setup_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Initialize application logging with consistent formatting.

    Configuration:
        - Output: stdout
        - Format: ``fmt`` argument, falling back to LOG_FORMAT; unknown
          names use the default text format
        - Level: ``level`` argument, falling back to LOG_LEVEL

    Raises:
        ConfigurationError: If the level is not a standard level name.

    Note:
        Call once at process startup (CLI entry point or app lifespan).
    """
    log_level = (level or settings.LOG_LEVEL).upper()
    if log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"Unknown log level {log_level!r}. Choose from: {', '.join(LOG_LEVELS)}"
        )

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,  # Preserve third-party loggers
        "formatters": {
            "default": _formatter_config(fmt or settings.LOG_FORMAT),
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": sys.stdout,
                "formatter": "default",
            },
        },
        "root": {
            "level": log_level,
            "handlers": ["console"],
        },
        "loggers": {
            "docingest": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,  # Prevent duplicate logs to root
            },
            "httpx": {
                "level": "WARNING",  # One INFO line per request is too chatty
                "handlers": ["console"],
                "propagate": False,
            },
            "uvicorn": {"handlers": ["console"], "level": "INFO", "propagate": False},
        },
    }

    dictConfig(logging_config)
