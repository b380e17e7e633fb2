"""Centralized logging configuration.

Two output formats: human-friendly UTC text lines or one JSON object per line.
Query handling code logs through ``StructuredLogger`` (event name + fields) and
tags everything emitted while a query runs with ``query_context(ref_id=...)``.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from infra.config import get_settings

# Fields that follow a query through decoding and transport logs
query_ctx: ContextVar[dict[str, Any] | None] = ContextVar("query_ctx", default=None)

_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
        "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
        "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
    }
)


def get_query_context() -> dict[str, Any]:
    """Get a copy of the current query context."""
    ctx = query_ctx.get()
    return dict(ctx) if ctx else {}


@contextmanager
def query_context(**fields: Any) -> Iterator[dict[str, Any]]:
    """Add ``fields`` to every log entry emitted inside the block."""
    merged = get_query_context()
    merged.update(fields)
    token = query_ctx.set(merged)
    try:
        yield merged
    finally:
        query_ctx.reset(token)


def _utc_iso8601() -> str:
    # Example: 2026-01-24T18:03:12.123Z
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record:
      - core fields (timestamp, level, logger, message, location)
      - structured fields passed via ``extra=``
      - query context and static extra fields
      - formatted exception when present
    """

    def __init__(self, *, extra_fields: Mapping[str, Any] | None = None) -> None:
        super().__init__()
        self._extra_fields = dict(extra_fields or {})

    def format(self, record: logging.LogRecord) -> str:
        base: dict[str, Any] = {
            "timestamp": _utc_iso8601(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func": record.funcName,
            "line": record.lineno,
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and key not in base and key not in ("fields", "asctime"):
                base[key] = value

        for key, value in get_query_context().items():
            base.setdefault(key, value)
        for key, value in self._extra_fields.items():
            base.setdefault(key, value)

        if record.exc_info:
            base["exception"] = self.formatException(record.exc_info)

        return json.dumps(base, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """
    Human-friendly logs with UTC timestamps; structured fields are appended
    as ``key=value`` pairs.
    """

    converter = time.gmtime  # UTC

    def __init__(self) -> None:
        super().__init__("%(asctime)sZ | %(levelname)s | %(name)s | %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "fields", None)
        pairs = dict(get_query_context())
        if isinstance(fields, Mapping):
            pairs.update(fields)
        if pairs:
            line += " | " + " ".join(f"{k}={v}" for k, v in pairs.items())
        return line


class StructuredLogger:
    """
    Event-style logger.

    Usage:
        logger = StructuredLogger(__name__)
        with query_context(ref_id="A"):
            logger.info("storm_stream_decoded", nodes=12, skipped=0)
    """

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {"event": event, "fields": fields}
        for key, value in fields.items():
            if key not in _STANDARD_ATTRS and key not in {"message", "asctime", "event", "fields"}:
                extra[key] = value
        self._logger.log(level, event, extra=extra)

    def debug(self, event: str, **fields: Any) -> None:
        self._log(logging.DEBUG, event, **fields)

    def info(self, event: str, **fields: Any) -> None:
        self._log(logging.INFO, event, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._log(logging.WARNING, event, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self._log(logging.ERROR, event, **fields)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    json_logs: bool = False
    override_root_handlers: bool = False
    extra_fields: Mapping[str, Any] | None = None


def setup_logging(
    *,
    level: str | None = None,
    json_logs: bool | None = None,
    override_root_handlers: bool | None = None,
    extra_fields: Mapping[str, Any] | None = None,
) -> None:
    """
    Central logging setup for the CLI and the API.

    Env vars:
      - STORMGRID_LOG_LEVEL: DEBUG|INFO|WARNING|ERROR (default INFO)
      - STORMGRID_LOG_JSON:  1/0 (default 0)
      - STORMGRID_LOG_OVERRIDE: 1/0 (default 0)
         If 1, replaces any pre-configured root handlers.
         If 0, only configures logging if root has no handlers.
    """
    config = get_settings(reload=True).logging

    cfg = LoggingConfig(
        level=(level or config.level).upper(),
        json_logs=json_logs if json_logs is not None else bool(config.json_logs),
        override_root_handlers=override_root_handlers
        if override_root_handlers is not None
        else bool(config.override_root_handlers),
        extra_fields=extra_fields,
    )

    root = logging.getLogger()
    root.setLevel(getattr(logging, cfg.level, logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if cfg.json_logs:
        handler.setFormatter(JsonFormatter(extra_fields=cfg.extra_fields))
    else:
        handler.setFormatter(TextFormatter())

    if cfg.override_root_handlers:
        for h in list(root.handlers):
            root.removeHandler(h)
        root.addHandler(handler)
    elif not root.handlers:
        root.addHandler(handler)

    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
