"""
Logging configuration with rotation support.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOGGER_NAME = "ipamcheck"


def setup_logger(
    name: str = LOGGER_NAME,
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_size_mb: int = 50,
    backup_count: int = 7,
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    console_format: str = "%(message)s"
) -> logging.Logger:
    """
    Set up a logger with console and optional file handlers.

    The console carries the human-readable check transcript, so it uses a
    bare message format by default; the file keeps timestamps.

    Args:
        name: Logger name
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (None for console only)
        max_size_mb: Maximum log file size before rotation
        backup_count: Number of backup files to keep
        log_format: Log message format for the file handler
        console_format: Log message format for the console handler

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    if logger.handlers:
        logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(console_format))
    console_handler.setLevel(getattr(logging, level.upper()))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_size_mb * 1024 * 1024,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setFormatter(logging.Formatter(log_format))
        file_handler.setLevel(getattr(logging, level.upper()))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """Get an existing logger by name."""
    return logging.getLogger(name)
