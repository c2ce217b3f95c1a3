"""Structured logging configuration and initialization."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, TextIO, cast

from typing_extensions import override

if TYPE_CHECKING:
    from wpcommit.config.settings import LogLevel

# Validation pass identifier (``buffer_id:generation``) for tracing async lookups
pass_id: ContextVar[str | None] = ContextVar("pass_id", default=None)

_STANDARD_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    },
)


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON objects."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        """Render record core fields, then its extras, as one JSON line."""
        payload = _core_fields(record)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_trace"] = self.formatStack(record.stack_info)
        _merge_extras(payload, record)
        return json.dumps(payload, default=str)


def _core_fields(record: logging.LogRecord) -> dict[str, object]:
    created = datetime.fromtimestamp(record.created, tz=UTC)
    return {
        "timestamp": created.isoformat(),
        "level": record.levelname,
        "message": record.getMessage(),
        "logger": record.name,
        "pass_id": pass_id.get(),
    }


def _merge_extras(payload: dict[str, object], record: logging.LogRecord) -> None:
    """Copy ``extra=`` fields; names colliding with core fields get a prefix."""
    reserved = frozenset(payload)
    attributes = cast("dict[str, object]", vars(record))
    for name, value in attributes.items():
        if name in _STANDARD_RECORD_ATTRS or name.startswith("_"):
            continue
        payload[f"extra_{name}" if name in reserved else name] = value


def init_logging(level: LogLevel, *, stream: TextIO | None = None) -> None:
    """Send JSON records at level and above to stderr (or stream)."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    # pytest capture handlers stay attached.
    stale = [h for h in root.handlers if type(h).__name__ != "LogCaptureHandler"]
    for existing in stale:
        root.removeHandler(existing)
    root.addHandler(handler)
