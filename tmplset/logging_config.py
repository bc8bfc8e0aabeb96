"""Structured logging for tmplset.

Every module logs through a child of the ``tmplset`` logger. setup_logging()
attaches handlers to that package logger only, so an application's own root
configuration is left in place: a human-readable console handler, plus a
rotating JSON file handler when a log file is given. Records still propagate
to the root logger.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

LOGGER_NAME = "tmplset"

CONSOLE_HANDLER_NAME = "tmplset.console"
JSON_HANDLER_NAME = "tmplset.json"

# Attributes every LogRecord already carries; extra fields may not reuse them
_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _console_handler(level: int) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(CONSOLE_HANDLER_NAME)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.setLevel(level)
    return handler


def _json_handler(log_path: Path) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Rotation at 10MB, 5 backups
    handler = RotatingFileHandler(
        log_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    handler.set_name(JSON_HANDLER_NAME)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s %(filename)s %(lineno)d",
            timestamp=True,
        )
    )
    handler.setLevel(logging.DEBUG)
    return handler


def setup_logging(log_level: str = "INFO", log_file: Path | str | None = None) -> logging.Logger:
    """Configure console and optional JSON file logging for the tmplset logger.

    Calling it again replaces the handlers a previous call installed and
    leaves any other handlers alone.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path of a rotating JSON log file, or None for console only

    Returns:
        The configured ``tmplset`` package logger
    """
    level = getattr(logging, log_level.upper())
    package_logger = logging.getLogger(LOGGER_NAME)
    package_logger.setLevel(level)

    for handler in list(package_logger.handlers):
        if handler.get_name() in (CONSOLE_HANDLER_NAME, JSON_HANDLER_NAME):
            package_logger.removeHandler(handler)
            handler.close()

    if log_file is not None:
        package_logger.addHandler(_json_handler(Path(log_file)))
    package_logger.addHandler(_console_handler(level))

    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with structured logging support.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance configured for structured logging
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    **extra_fields: Any,
) -> None:
    """Log a message with additional structured context fields.

    Fields named like a built-in LogRecord attribute (``name``, ``lineno``,
    ...) are stored with a ``ctx_`` prefix instead of failing the call.

    Args:
        logger: Logger instance
        level: Log level (debug, info, warning, error, critical)
        message: Log message
        **extra_fields: Additional fields to include in JSON log (e.g., template, chain)
    """
    extra = {(f"ctx_{key}" if key in _RESERVED_ATTRS else key): value for key, value in extra_fields.items()}
    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra)
