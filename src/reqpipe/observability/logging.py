from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Mapping

__all__ = [
    "LEVEL_NAME_TO_INT",
    "LOG_FORMAT_CONSOLE",
    "LOG_FORMAT_ENV",
    "LOG_FORMAT_JSON",
    "LogContext",
    "StructuredConsoleFormatter",
    "StructuredJSONFormatter",
    "get_logger",
    "resolve_level",
]


LOG_FORMAT_ENV = "REQPIPE_LOG_FORMAT"
LOG_FORMAT_JSON = "json"
LOG_FORMAT_CONSOLE = "console"

LEVEL_NAME_TO_INT: dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_DEFAULT_CONTEXT_KEYS = ("request_id",)
_LOG_CONTEXT: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("reqpipe_log_context")

_DEFAULT_CONSOLE_FORMAT = "%(name)s: %(asctime)s %(message)s"
_DEFAULT_CONSOLE_DATEFMT = "%Y/%m/%d %H:%M:%S"

_RESERVED_FIELDS = {"timestamp", "level", "logger", "message", "exception", "stack"}

_LOG_RECORD_ATTRS = {
    "name", "msg", "args", "levelname", "levelno", "pathname", "filename", "module",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName", "created", "msecs",
    "relativeCreated", "thread", "threadName", "processName", "process", "taskName",
    "message", "asctime",
}


def _normalize_log_format(value: str | None, default: str = LOG_FORMAT_JSON) -> str:
    if not value:
        return default
    normalized = value.strip().lower()
    if normalized in {LOG_FORMAT_JSON, LOG_FORMAT_CONSOLE}:
        return normalized
    return default


def resolve_level(value: str | int | None, default: int = logging.INFO) -> int:
    """Map a level name or number to a logging level."""
    if value is None:
        return default
    if isinstance(value, int):
        return value
    return LEVEL_NAME_TO_INT.get(value.strip().upper(), default)


def _json_default(value: Any) -> str:
    try:
        return str(value)
    except Exception:
        return repr(value)


def _extract_extras(record: logging.LogRecord) -> dict[str, Any]:
    extras: dict[str, Any] = {}
    for key, value in record.__dict__.items():
        if key in _LOG_RECORD_ATTRS or key.startswith("_"):
            continue
        extras[key] = value
    return extras


def _context_snapshot() -> dict[str, Any]:
    current = _LOG_CONTEXT.get({})
    snapshot: dict[str, Any] = {key: current.get(key) for key in _DEFAULT_CONTEXT_KEYS}
    for key, value in current.items():
        if key not in snapshot:
            snapshot[key] = value
    return snapshot


def _filter_reserved(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if key not in _RESERVED_FIELDS}


class LogContext:
    """Async-safe structured logging context.

    Values bound here are attached to every record emitted in the same task,
    so concurrent requests never see each other's ids.

    Args:
        request_id: Request correlation identifier.
        **extra: Additional context values for log enrichment.
    """

    def __init__(self, request_id: str | None = None, **extra: Any) -> None:
        values: dict[str, Any] = {}
        if request_id is not None:
            values["request_id"] = request_id
        for key, value in extra.items():
            if value is not None:
                values[key] = value
        self._values = values
        self._token: contextvars.Token[dict[str, Any]] | None = None

    def __enter__(self) -> LogContext:
        current = _LOG_CONTEXT.get({})
        self._token = _LOG_CONTEXT.set({**current, **self._values})
        return self

    def __exit__(self, exc_type: Any, exc: Any, traceback: Any) -> None:
        if self._token is not None:
            _LOG_CONTEXT.reset(self._token)
            self._token = None

    @classmethod
    def snapshot(cls) -> dict[str, Any]:
        return _context_snapshot()


class ContextFilter(logging.Filter):

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _context_snapshot().items():
            if hasattr(record, key):
                continue
            record.__dict__[key] = "-" if value is None else value
        return True


class StructuredJSONFormatter(logging.Formatter):
    """Formats log records as one JSON object per line.

    Args:
        datefmt: Optional date format string.
        ensure_ascii: Whether to escape non-ASCII characters.
    """

    def __init__(self, *, datefmt: str | None = None, ensure_ascii: bool = True) -> None:
        super().__init__(datefmt=datefmt)
        self._ensure_ascii = ensure_ascii

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(_filter_reserved(_context_snapshot()))
        payload.update(_filter_reserved(_extract_extras(record)))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, default=_json_default, ensure_ascii=self._ensure_ascii)


class StructuredConsoleFormatter(logging.Formatter):
    """Human-readable ``<logger>: <time> <message>`` lines."""

    def __init__(self, fmt: str | None = None, *, datefmt: str | None = None) -> None:
        super().__init__(fmt=fmt or _DEFAULT_CONSOLE_FORMAT, datefmt=datefmt or _DEFAULT_CONSOLE_DATEFMT)


def _handler_exists(logger: logging.Logger, format_kind: str) -> bool:
    for handler in logger.handlers:
        if getattr(handler, "_reqpipe_handler", False) and getattr(handler, "_format_kind", None) == format_kind:
            return True
    return False


def get_logger(
    name: str,
    *,
    log_format: str | None = None,
    default_format: str = LOG_FORMAT_JSON,
    level: str | int | None = None,
    stream: Any | None = None,
) -> logging.Logger:
    """Return a configured logger.

    One stream handler is attached per format kind; calling again with the
    same name and format returns the same logger unchanged.

    Args:
        name: Logger name.
        log_format: ``json`` or ``console``; defaults to ``$REQPIPE_LOG_FORMAT``
            and then ``default_format``.
        default_format: Format used when neither is set.
        level: Optional level name or number.
        stream: Output stream, ``sys.stdout`` by default.

    Returns:
        Configured logging.Logger instance.
    """
    resolved_format = _normalize_log_format(log_format or os.getenv(LOG_FORMAT_ENV), default_format)
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(resolve_level(level))
    elif logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)
    if _handler_exists(logger, resolved_format):
        return logger
    formatter: logging.Formatter
    if resolved_format == LOG_FORMAT_CONSOLE:
        formatter = StructuredConsoleFormatter()
    else:
        formatter = StructuredJSONFormatter()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(ContextFilter())
    handler._reqpipe_handler = True  # type: ignore[attr-defined]
    handler._format_kind = resolved_format  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.propagate = False
    return logger
