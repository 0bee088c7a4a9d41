"""
Logging Configuration for the Thoughtchain MCP Server.

Provides centralized logger setup. Every module logger lives under the
``thoughtchain`` namespace and propagates to one package logger that writes
to stderr and, once configured, to the log file. Stdout carries the MCP
stdio protocol and is never written to.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

PACKAGE_LOGGER = "thoughtchain"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class FlushingStreamHandler(logging.StreamHandler):
    """StreamHandler that flushes after every emit.

    ::: This is-in-layer Infrastructure-Layer.
    ::: This is a handler.
    ::: This is stateless.
    """
    def emit(self, record):
        super().emit(record)
        self.flush()


def _create_stderr_handler() -> logging.StreamHandler:
    """Create a stderr handler for console output with auto-flush."""
    handler = FlushingStreamHandler(sys.stderr)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    return handler


def _create_file_handler(log_path: Path) -> Optional[logging.FileHandler]:
    """
    Create a file handler for the given log file.

    Args:
        log_path: Full path of the log file

    Returns:
        Configured FileHandler, or None if the file cannot be opened
    """
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, mode='a', encoding='utf-8')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        return handler
    except OSError as e:
        print(f"WARNING: cannot open log file {log_path}: {e}", file=sys.stderr)
        return None


def get_server_logger() -> logging.Logger:
    """
    Get the package logger that owns all handlers.

    Output goes to stderr, plus the log file after configure_file_logging().

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(PACKAGE_LOGGER)

    # Only configure once
    if not logger.handlers:
        logger.setLevel(logging.DEBUG)
        logger.propagate = False  # Don't propagate to root logger
        logger.addHandler(_create_stderr_handler())

    return logger


# Track configured log file for reconfiguration
_configured_log_file: Optional[Path] = None


def configure_file_logging(log_file: Optional[str]) -> Optional[Path]:
    """
    Point file logging at ``log_file``, replacing any previous file handler.

    Args:
        log_file: Path of the log file; empty or None disables file logging

    Returns:
        The active log file path, or None when file logging is off
    """
    global _configured_log_file

    logger = get_server_logger()
    for handler in logger.handlers[:]:
        if isinstance(handler, logging.FileHandler):
            handler.close()
            logger.removeHandler(handler)
    _configured_log_file = None

    if not log_file:
        return None

    path = Path(log_file)
    handler = _create_file_handler(path)
    if handler:
        logger.addHandler(handler)
        _configured_log_file = path
    return _configured_log_file


def configure_logger(logger_name: str) -> logging.Logger:
    """
    Get a module logger wired to the package handlers.

    Args:
        logger_name: Name of the logger (e.g., __name__)

    Returns:
        Logger instance propagating to the package logger
    """
    get_server_logger()
    if logger_name != PACKAGE_LOGGER and not logger_name.startswith(PACKAGE_LOGGER + "."):
        logger_name = f"{PACKAGE_LOGGER}.{logger_name}"
    return logging.getLogger(logger_name)
