"""
Logging Configuration for dev-agent.

This module provides the logging setup for the MCP server. Because the
server speaks its protocol over stdout, every handler configured here
writes to stderr or to a file, never to stdout.

- Rich console output on stderr (or plain structured lines)
- Optional daily log file
- Structured key=value fields taken from ``extra``

Usage:
    from devagent.logging import get_logger

    logger = get_logger(__name__)
    logger.info("Request handled", extra={"method": "tools/call", "request_id": 3})

Configuration:
    LOG_LEVEL               DEBUG, INFO (default), WARNING, ERROR, CRITICAL
    DEV_AGENT_LOG_TO_FILE   "1"/"true" to also write ~/.dev-agent/logs/dev-agent-<date>.log
    DEV_AGENT_PLAIN_LOGS    "1"/"true" to disable rich console formatting
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler

from .constants import DEFAULT_STORAGE_DIRECTORY, LOG_DIRECTORY_NAME


# ============================================================================
# Constants
# ============================================================================

PACKAGE_LOGGER_NAME = "devagent"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_LOG_DIR = DEFAULT_STORAGE_DIRECTORY / LOG_DIRECTORY_NAME

_TRUTHY = {"1", "true", "yes", "on"}

# Attributes every LogRecord has; anything else came in through ``extra``
_RESERVED_RECORD_FIELDS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


# ============================================================================
# Custom Formatter for Structured Logging
# ============================================================================

class StructuredFormatter(logging.Formatter):
    """
    A formatter that appends ``extra`` fields as key=value pairs.

    Example output:
        2026-01-24 10:30:45 | INFO     | devagent.server |
        Received request | method=tools/call | request_id=3
    """

    def format(self, record: logging.LogRecord) -> str:
        base_message = super().format(record)

        extra_fields = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_FIELDS
        ]

        if extra_fields:
            return f"{base_message} | {' | '.join(extra_fields)}"
        return base_message


# ============================================================================
# Logger Factory
# ============================================================================

_loggers_initialized = False
_file_handler: Optional[logging.FileHandler] = None


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in _TRUTHY


def setup_logging(
    log_level: Optional[str] = None,
    log_to_file: Optional[bool] = None,
    log_dir: Optional[Path] = None,
    use_rich_console: Optional[bool] = None,
    force: bool = False,
) -> None:
    """
    Configure the logging system for dev-agent.

    This should be called once at application startup. Subsequent calls
    are ignored unless ``force`` is set, which replaces the handlers.

    Args:
        log_level: Logging level name. Defaults to LOG_LEVEL or INFO.
        log_to_file: Whether to write logs to a file. Defaults to DEV_AGENT_LOG_TO_FILE.
        log_dir: Directory for log files. Defaults to ~/.dev-agent/logs/
        use_rich_console: Use Rich for console output. Defaults to on
                          unless DEV_AGENT_PLAIN_LOGS is set.
        force: Reconfigure even if logging was already set up.
    """
    global _loggers_initialized, _file_handler

    if _loggers_initialized and not force:
        return

    level_str = log_level or os.environ.get("LOG_LEVEL", DEFAULT_LOG_LEVEL)
    level = getattr(logging, level_str.upper(), logging.INFO)
    if log_to_file is None:
        log_to_file = _env_flag("DEV_AGENT_LOG_TO_FILE")
    if use_rich_console is None:
        use_rich_console = not _env_flag("DEV_AGENT_PLAIN_LOGS")

    root_logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    root_logger.setLevel(level)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()
    root_logger.propagate = False

    # stdout carries protocol frames, so the console handler must use stderr
    if use_rich_console:
        console_handler: logging.Handler = RichHandler(
            console=Console(stderr=True),
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        console_handler.setFormatter(logging.Formatter("%(message)s"))
    else:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(StructuredFormatter(LOG_FORMAT, LOG_DATE_FORMAT))

    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    _file_handler = None
    if log_to_file:
        log_directory = log_dir or DEFAULT_LOG_DIR
        log_directory.mkdir(parents=True, exist_ok=True)

        log_file = log_directory / f"dev-agent-{datetime.now():%Y-%m-%d}.log"
        _file_handler = logging.FileHandler(log_file, encoding="utf-8")
        _file_handler.setFormatter(StructuredFormatter(LOG_FORMAT, LOG_DATE_FORMAT))
        _file_handler.setLevel(level)
        root_logger.addHandler(_file_handler)

    _loggers_initialized = True

    root_logger.debug(
        "dev-agent logging initialized",
        extra={"log_level": level_str, "log_to_file": log_to_file},
    )


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the specified module.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        A configured Logger instance.

    Example:
        logger = get_logger(__name__)
        logger.warning("Rate limit exceeded", extra={
            "tool_name": "dev_search",
            "retry_after": 2,
        })
    """
    if not _loggers_initialized:
        setup_logging()

    return logging.getLogger(name)


# ============================================================================
# Convenience Functions
# ============================================================================

def log_operation_start(
    logger: logging.Logger,
    operation: str,
    **context: Any
) -> datetime:
    """
    Log the start of an operation and return the start time.

    Use with log_operation_end for timing operations.
    """
    logger.info(f"{operation} started", extra=context)
    return datetime.now()


def log_operation_end(
    logger: logging.Logger,
    operation: str,
    start_time: datetime,
    success: bool = True,
    **context: Any
) -> float:
    """
    Log the end of an operation with duration.

    Args:
        logger: Logger instance to use.
        operation: Name of the operation that completed.
        start_time: Timestamp from log_operation_start.
        success: Whether the operation succeeded.
        **context: Additional context to log.

    Returns:
        Duration in seconds.
    """
    duration = (datetime.now() - start_time).total_seconds()
    status = "completed" if success else "failed"

    log_method = logger.info if success else logger.error
    log_method(
        f"{operation} {status}",
        extra={"duration_seconds": round(duration, 3), **context}
    )

    return duration
