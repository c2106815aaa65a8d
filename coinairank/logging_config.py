"""
Logging configuration for the listing service.

Console output is colored when attached to a terminal; file output
is size-rotated so a long-running server does not fill the disk.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from coinairank.constants import (
    LOG_BACKUP_COUNT,
    LOG_DATE_FORMAT,
    LOG_FORMAT,
    LOG_MAX_BYTES,
)

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("asyncpg", "aiohttp.access", "asyncio")


class ColoredFormatter(logging.Formatter):
    """
    Formatter with ANSI color codes for console output.

    Colors are applied based on log level:
    - DEBUG: Gray
    - INFO: Green
    - WARNING: Yellow
    - ERROR: Red
    - CRITICAL: Red background
    """

    COLORS = {
        logging.DEBUG: "\033[90m",
        logging.INFO: "\033[92m",
        logging.WARNING: "\033[93m",
        logging.ERROR: "\033[91m",
        logging.CRITICAL: "\033[41m",
    }
    RESET = "\033[0m"

    def __init__(self, fmt: Optional[str] = None, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt or LOG_FORMAT, datefmt or LOG_DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelno, "")
        message = super().format(record)
        return f"{color}{message}{self.RESET}" if color else message


def resolve_log_level(verbose: bool = False, quiet: bool = False) -> int:
    """Map CLI verbosity flags to a logging level. Verbose wins."""
    if verbose:
        return logging.DEBUG
    if quiet:
        return logging.WARNING
    return logging.INFO


def setup_logging(
    log_file: Optional[Path] = None,
    log_level: int = logging.INFO,
    enable_console: bool = True,
    enable_colors: bool = True,
) -> logging.Logger:
    """
    Configure application logging.

    Args:
        log_file: Path to log file (None to disable file logging)
        log_level: Minimum log level to capture
        enable_console: Whether to log to console
        enable_colors: Whether to use colored console output

    Returns:
        Root logger instance
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    plain_formatter = logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(log_level)

        if enable_colors and sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter())
        else:
            console_handler.setFormatter(plain_formatter)

        root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(plain_formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
