"""
Application Logger

Every backend module logs through a child of the ``learnquest`` logger:

    logger = app_logger.getChild("gamification.ledger")

The root app logger is configured once from the ``LOG_*`` settings, as
plain text or one JSON object per line. Context attached with
``LoggerAdapter`` (user, activity and entity ids) ends up in the ``data``
attribute of each record and is flattened into the JSON output.
"""

import os
import sys
import json
import time
import logging
import datetime
import functools
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from backend.common.config import LoggingConfig, get_config

# Name of the root application logger
APP_LOGGER_NAME = "learnquest"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

T = TypeVar('T')

__all__ = [
    'configure_logger',
    'LoggerAdapter',
    'JsonFormatter',
    'app_logger',
    'log_execution_time'
]


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with adapter context merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "data", None)
        if isinstance(context, dict):
            entry.update(context)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def configure_logger(settings: LoggingConfig, name: str = APP_LOGGER_NAME) -> logging.Logger:
    """
    Attach the configured handlers to a logger, replacing any it had.

    Args:
        settings: Logging section of the configuration
        name: Logger to configure

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(settings.level)
    logger.handlers = []
    # Not passed on to root handlers
    logger.propagate = False

    if settings.json_output:
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(settings.format, DEFAULT_DATE_FORMAT)

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.file_path:
        directory = os.path.dirname(settings.file_path)
        try:
            if directory:
                os.makedirs(directory, exist_ok=True)
            handlers.append(logging.FileHandler(settings.file_path))
        except OSError as e:
            logger.warning(f"Logging to stdout only, cannot open {settings.file_path}: {e}")

    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


class LoggerAdapter(logging.LoggerAdapter):
    """
    Adds fixed context to every message.

    Used while recording an activity so each line carries the user,
    activity type and entity it concerns.
    """

    def __init__(self, logger: logging.Logger, context: Optional[Dict[str, Any]] = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = dict(kwargs.get("extra") or {})
        extra["data"] = {**self.extra, **extra.get("data", {})}
        kwargs["extra"] = extra
        context = " ".join(f"{key}={value}" for key, value in self.extra.items())
        return (f"{msg} [{context}]" if context else msg), kwargs


def get_app_logger() -> logging.Logger:
    """Return the app logger, configuring it on first use."""
    logger = logging.getLogger(APP_LOGGER_NAME)
    if not logger.handlers:
        configure_logger(get_config().logging)
    return logger


app_logger = get_app_logger()


def log_execution_time(
    logger: Optional[logging.Logger] = None
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Log how long a coroutine took: debug on success, error on failure.

    Args:
        logger: Logger to write to, defaults to app_logger
    """
    log = logger or app_logger

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            started = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                log.error(f"{func.__name__} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise
            log.debug(f"{func.__name__} took {time.perf_counter() - started:.3f}s")
            return result
        return wrapper
    return decorator
