"""Logging configuration for mediadisplay."""

import json
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

from mediadisplay.utils.config import LOG_FILE, APP_NAME


def setup_logging(level: int = logging.INFO, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure and return the application logger.

    Module loggers are named after their import path, so they all
    propagate to the ``mediadisplay`` logger configured here.

    Args:
        level: Logging level (default: INFO)
        log_file: Path to log file (default: from config)

    Returns:
        Configured logger instance
    """
    if log_file is None:
        log_file = LOG_FILE

    logger = logging.getLogger(APP_NAME)
    logger.setLevel(level)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_formatter = logging.Formatter(
        fmt="%(levelname)-8s | %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    # The file log is the place operators look for API failures
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(detailed_formatter)
    logger.addHandler(file_handler)

    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (default: APP_NAME)

    Returns:
        Logger instance
    """
    if name is None:
        name = APP_NAME
    return logging.getLogger(name)


def log_error(logger: logging.Logger, message: str, data: Optional[dict] = None) -> None:
    """
    Log an error with its context appended as JSON.

    Args:
        logger: Logger to write to
        message: Human readable message
        data: Optional context (endpoint, params, response...)
    """
    if data:
        message = f"{message}: {json.dumps(data, default=_json_default, ensure_ascii=False)}"
    logger.error(message)


def _json_default(value: Any) -> str:
    return str(value)
