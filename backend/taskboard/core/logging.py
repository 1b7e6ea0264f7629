"""Logging configuration with text and JSON output formats."""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import UTC, datetime
from typing import Any

from taskboard.core.config import settings

# Attributes present on every LogRecord; anything else was passed via `extra=`.
_RESERVED_RECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    },
)
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _record_extras(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_RECORD_ATTRS and not key.startswith("_")
    }


def _json_default(value: object) -> str:
    return str(value)


class TextFormatter(logging.Formatter):
    """Human-readable formatter that appends `extra=` fields as key=value pairs."""

    def __init__(self, *, use_utc: bool = False) -> None:
        super().__init__(fmt=_TEXT_FORMAT, datefmt=_DATE_FORMAT)
        if use_utc:
            self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = _record_extras(record)
        if not extras:
            return base
        pairs = " ".join(f"{key}={value}" for key, value in sorted(extras.items()))
        return f"{base} {pairs}"


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for log aggregation pipelines."""

    def __init__(self, *, use_utc: bool = False) -> None:
        super().__init__()
        self._use_utc = use_utc

    def format(self, record: logging.LogRecord) -> str:
        if self._use_utc:
            timestamp = datetime.fromtimestamp(record.created, tz=UTC)
        else:
            timestamp = datetime.fromtimestamp(record.created).astimezone()
        payload: dict[str, Any] = {
            "timestamp": timestamp.isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_record_extras(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=_json_default, ensure_ascii=False)


def build_formatter(log_format: str, *, use_utc: bool) -> logging.Formatter:
    """Return the formatter matching a configured log format name."""
    if log_format == "json":
        return JsonFormatter(use_utc=use_utc)
    return TextFormatter(use_utc=use_utc)


def configure_logging(
    *,
    level: str | None = None,
    log_format: str | None = None,
    use_utc: bool | None = None,
) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; previously installed handlers are replaced.
    """
    root = logging.getLogger()
    resolved_level = (level or settings.log_level).upper()
    root.setLevel(getattr(logging, resolved_level, logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        build_formatter(
            log_format or settings.log_format,
            use_utc=settings.log_use_utc if use_utc is None else use_utc,
        ),
    )
    root.addHandler(handler)

    # Uvicorn installs its own access log; request logging middleware covers it.
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.captureWarnings(True)


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
