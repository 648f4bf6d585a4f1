"""
Logging configuration for the Android store adapter.

Console output is colored when attached to a terminal; the optional
log file can be plain text or one JSON object per line. Context set
with LogContext is attached to every record emitted inside it.
"""

from __future__ import annotations

import contextvars
import json
import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any, Dict, Optional

LOG_FILE_NAME = "android-store.log"
CONSOLE_FORMAT = "%(levelname)s %(name)s: %(message)s%(context_suffix)s"
FILE_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s [%(filename)s:%(lineno)d] "
    "%(message)s%(context_suffix)s"
)

# Loggers that are too chatty at the adapter's debug level
QUIET_LOGGERS = ("dbus_fast", "asyncio")

_log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar(
    "android_store_log_context", default={}
)


class ContextFilter(logging.Filter):
    """Copies the active LogContext onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _log_context.get()
        record.context = dict(context)
        record.context_suffix = (
            " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
            if context else ""
        )
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "function": record.funcName,
            "line": record.lineno,
        }
        context = getattr(record, "context", None)
        if context:
            entry["context"] = context
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ColoredFormatter(logging.Formatter):
    """Colors the level name by severity."""

    COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        plain = record.levelname
        record.levelname = f"{self.COLORS.get(record.levelno, '')}{plain}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    json_logs: bool = False,
    log_dir: Optional[Path] = None,
) -> None:
    """
    Configure root logging for the adapter and its CLI.

    Args:
        level: Console level
        log_file: Also log everything at DEBUG to this file
        json_logs: Write the log file as JSON lines
        log_dir: Directory for the log file, overrides log_file
    """
    root = logging.getLogger()
    root.setLevel(min(level, logging.DEBUG) if (log_file or log_dir) else level)
    root.handlers.clear()

    context_filter = ContextFilter()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.addFilter(context_filter)
    formatter_cls = ColoredFormatter if sys.stderr.isatty() else logging.Formatter
    console.setFormatter(formatter_cls(CONSOLE_FORMAT))
    root.addHandler(console)

    if log_dir:
        log_file = log_dir / LOG_FILE_NAME

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(JSONFormatter() if json_logs else logging.Formatter(FILE_FORMAT))
        root.addHandler(file_handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class LogContext:
    """
    Attach key-value context to log records emitted inside the block.

    The context is held in a context variable, so concurrent tasks keep
    their own values.

    Example:
        with LogContext(command="install", package="org.fdroid.fdroid"):
            logger.info("Installing")
    """

    def __init__(self, **kwargs):
        self.context = kwargs
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "LogContext":
        merged = {**_log_context.get(), **self.context}
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, *exc_info) -> None:
        _log_context.reset(self._token)
        self._token = None


def current_context() -> Dict[str, Any]:
    """Context that would be attached to a record logged now."""
    return dict(_log_context.get())
