"""
Logging configuration for nftjson.

Library modules only call ``logging.getLogger(__name__)``; applications
(and the ``nftjson`` command) call :func:`setup_logging` once.
"""

import logging
import sys
from pathlib import Path
from logging.handlers import RotatingFileHandler

PACKAGE_LOGGER = "nftjson"
DEFAULT_LOG_PATH = Path.home() / ".nftjson" / "logs" / "nftjson.log"
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

CONSOLE_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
FILE_FORMAT = (
    '%(asctime)s | %(levelname)-8s | %(name)-20s | %(module_name)-15s | '
    '%(function_name)-20s | %(lineno)-4d | %(message)s'
)


class StructuredFormatter(logging.Formatter):
    """Formatter adding module and function fields for file logs."""

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, 'module_name'):
            record.module_name = record.module
        if not hasattr(record, 'function_name'):
            record.function_name = record.funcName
        return super().format(record)


def _log_path(log_file: str | None, log_dir: str | None) -> Path:
    if log_file:
        return Path(log_file)
    if log_dir:
        return Path(log_dir) / "nftjson.log"
    return DEFAULT_LOG_PATH


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_dir: str | None = None,
    max_bytes: int = 10485760,  # 10MB
    backup_count: int = 5,
    enable_console: bool = True,
    enable_file: bool = False,
) -> logging.Logger:
    """
    Configure the ``nftjson`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Log file path (overrides log_dir)
        log_dir: Directory holding ``nftjson.log``
        max_bytes: Maximum log file size before rotation
        backup_count: Number of rotated files to keep
        enable_console: Log to stderr
        enable_file: Log to the rotating file; always at DEBUG

    Returns:
        The configured package logger
    """
    numeric_level = getattr(logging, level.upper())
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(numeric_level)
    logger.handlers.clear()

    if enable_console:
        # stdout carries command output (JSON)
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, DATE_FORMAT))
        logger.addHandler(console_handler)

    if enable_file:
        log_path = _log_path(log_file, log_dir)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StructuredFormatter(FILE_FORMAT, DATE_FORMAT))
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger
