"""
Logging for the inventory sheet sync.

Console output goes through rich. When file logging is enabled every record
is also written as one JSON object per line to the daily log file, carrying
the per-report context set with LogContext.
"""

import functools
import inspect
import json
import logging
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from rich.console import Console
from rich.logging import RichHandler

from inventory_sync.config import get_settings

# Attributes every LogRecord carries; anything else came from extra= or the context filter
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}

_QUIET_LOGGERS = ("urllib3", "google", "googleapiclient", "google_auth_httplib2")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update({key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS})

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class ContextFilter(logging.Filter):
    """Copies the current report context onto every record."""

    def __init__(self) -> None:
        super().__init__()
        self.context: Dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        self.context.update(kwargs)

    def clear_context(self) -> None:
        self.context.clear()

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.items():
            setattr(record, key, value)
        return True


context_filter = ContextFilter()


class LogContext:
    """
    Scoped logging context, e.g. the report file being processed.

    Nested scopes override outer values; leaving a scope restores exactly
    what was set before it was entered.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.values = kwargs
        self._saved: Dict[str, Any] = {}

    def __enter__(self) -> "LogContext":
        self._saved = dict(context_filter.context)
        context_filter.set_context(**self.values)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        context_filter.clear_context()
        context_filter.set_context(**self._saved)


def setup_logging(log_level: Optional[str] = None, log_file_path: Optional[Path] = None) -> None:
    """
    Configure the root logger.

    Args:
        log_level: Logging level (defaults to settings)
        log_file_path: JSON log file (defaults to today's file from settings,
            None there when LOG_FILE is off)
    """
    settings = get_settings()
    log_level = log_level or settings.log_level
    log_file_path = log_file_path or settings.get_log_file_path()

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
        rich_tracebacks=True,
        tracebacks_show_locals=settings.dev_mode,
    )
    console_handler.addFilter(context_filter)
    root_logger.addHandler(console_handler)

    if log_file_path:
        log_file_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(StructuredFormatter())
        root_logger.addHandler(file_handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        "Logging configured",
        extra={"log_level": log_level, "log_file": str(log_file_path) if log_file_path else None},
    )


def get_logger(name: str) -> logging.Logger:
    """Logger for a module; pass __name__."""
    return logging.getLogger(name)


def clean_old_logs(log_dir: Path, prefix: str, max_age: timedelta) -> int:
    """
    Delete daily log files older than the retention window.

    Only files named <prefix>*.log are considered.

    Returns:
        Number of deleted files
    """
    logger = get_logger(__name__)
    if not log_dir.exists():
        return 0

    cutoff = time.time() - max_age.total_seconds()
    deleted = 0
    for path in log_dir.glob(f"{prefix}*.log"):
        if path.is_file() and path.stat().st_mtime < cutoff:
            path.unlink()
            deleted += 1
            logger.debug("Deleted old log file", extra={"log_file": path.name})

    if deleted:
        logger.info("Log cleanup completed", extra={"deleted_count": deleted})
    return deleted


def log_performance(func):
    """
    Log the duration of every call at DEBUG, and failures at ERROR.

    Works on plain and async functions; the gateway wraps each API call with it.
    """
    logger = get_logger(func.__module__)
    name = func.__name__

    def finished(started: float) -> None:
        logger.debug(f"Completed {name}", extra={"duration_seconds": time.perf_counter() - started})

    def failed(started: float, error: Exception) -> None:
        logger.error(f"Failed {name}", extra={"duration_seconds": time.perf_counter() - started, "error": str(error)})

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                failed(started, e)
                raise
            finished(started)
            return result

        return async_wrapper

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            failed(started, e)
            raise
        finished(started)
        return result

    return sync_wrapper
