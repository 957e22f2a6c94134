from __future__ import annotations

from reqpipe.observability.logging import (
    LEVEL_NAME_TO_INT,
    LOG_FORMAT_CONSOLE,
    LOG_FORMAT_ENV,
    LOG_FORMAT_JSON,
    LogContext,
    StructuredConsoleFormatter,
    StructuredJSONFormatter,
    get_logger,
    resolve_level,
)

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
