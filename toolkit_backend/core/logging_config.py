"""
Central logging configuration.
Creates file and console handlers with support for TRACE/INFO/WARNING/ERROR levels.
"""
from __future__ import annotations

import functools
import logging
import os
import time
from typing import Any, Callable, Optional, TypeVar

from toolkit_backend.core.config import settings

F = TypeVar("F", bound=Callable[..., Any])

TRACE_LEVEL = 5
logging.addLevelName(TRACE_LEVEL, "TRACE")


def trace(self: logging.Logger, message: str, *args, **kwargs) -> None:
    """Emit a TRACE-level message on the logger instance."""
    if self.isEnabledFor(TRACE_LEVEL):
        self._log(TRACE_LEVEL, message, args, **kwargs)


logging.Logger.trace = trace  # type: ignore[attr-defined]


class LogLevelFilter(logging.Filter):
    """Filter log records to an allowed set of levels."""

    def __init__(self, allowed_levels: set[int]) -> None:
        super().__init__()
        self._allowed_levels = allowed_levels

    def filter(self, record: logging.LogRecord) -> bool:
        """Return True when the record level is allowed."""
        return record.levelno in self._allowed_levels


_LEVEL_NAMES = {
    "TRACE": TRACE_LEVEL,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def _parse_allowed_levels() -> set[int]:
    """Parse the configured log levels into numeric values."""
    default_levels = set(_LEVEL_NAMES.values())
    raw = settings.LOG_LEVELS
    if not raw:
        return default_levels

    levels = {
        _LEVEL_NAMES[name.strip().upper()]
        for name in raw.split(",")
        if name.strip().upper() in _LEVEL_NAMES
    }
    # CRITICAL records always pass when ERROR is enabled
    if logging.ERROR in levels:
        levels.add(logging.CRITICAL)
    return levels or default_levels


def _resolve_level(level_name: Optional[str]) -> int:
    """Resolve the configured log level string to its numeric value."""
    if not level_name:
        return logging.INFO
    normalized = level_name.strip().upper()
    if normalized == "TRACE":
        return TRACE_LEVEL
    return getattr(logging, normalized, logging.INFO)


def configure_logging() -> None:
    """Configure root logger with console + optional file handlers."""
    root_logger = logging.getLogger()
    root_logger.setLevel(_resolve_level(settings.LOG_LEVEL))
    root_logger.handlers.clear()

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    level_filter = LogLevelFilter(_parse_allowed_levels())

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(level_filter)
    root_logger.addHandler(console_handler)

    if settings.LOG_FILE_PATH:
        log_dir = os.path.dirname(settings.LOG_FILE_PATH)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.FileHandler(settings.LOG_FILE_PATH)
        file_handler.setFormatter(formatter)
        file_handler.addFilter(level_filter)
        root_logger.addHandler(file_handler)


def log_db_timing(func: F) -> F:
    """
    Decorator to log the execution time of repository operations.

    Logs the qualified function name, its positional/keyword arguments
    (excluding ``self``) and the duration in milliseconds. Aggregates are
    logged by id so that whole toolkits are not dumped into the log.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = logging.getLogger(func.__module__)

        arg_parts = [_describe(arg) for arg in args[1:]]
        arg_parts.extend(f"{key}={_describe(value)}" for key, value in kwargs.items())
        args_str = ", ".join(arg_parts)

        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "DB_OP | %s | duration=%.3fms | args=(%s) | error=%s",
                func.__qualname__,
                elapsed_ms,
                args_str,
                str(e),
            )
            raise
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        if settings.LOG_TRACE_CALLS:
            logger.info(
                "DB_OP | %s | duration=%.3fms | args=(%s)",
                func.__qualname__,
                elapsed_ms,
                args_str,
            )
        return result
    return wrapper  # type: ignore[return-value]


def _describe(value: Any) -> str:
    """Short representation of a repository argument for timing logs."""
    entity_id = getattr(value, "id", None)
    if entity_id is not None and not isinstance(value, (str, int)):
        return f"{type(value).__name__}(id={entity_id})"
    return str(value)
