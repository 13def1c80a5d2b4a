"""
Logging Setup.

Everything the voucher OCR system logs goes through the "voucher_ocr"
logger hierarchy. Console output colours the level name with colorama;
a size-rotated log file can be enabled in settings.yaml.

Usage:
    from voucher_ocr.utils.logger import setup_logger_from_config, get_logger

    setup_logger_from_config()          # once, at startup
    logger = get_logger(__name__)       # in every module
    logger.info("Extracting voucher...")
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Optional

import colorama
from colorama import Fore, Style

colorama.init()

ROOT_LOGGER_NAME = "voucher_ocr"
DEFAULT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LEVEL_COLORS = {
    "DEBUG": Fore.CYAN,
    "INFO": Fore.GREEN,
    "WARNING": Fore.YELLOW,
    "ERROR": Fore.RED,
    "CRITICAL": Fore.RED + Style.BRIGHT,
}


class ColoredFormatter(logging.Formatter):
    """Formatter that colours the level name only, leaving the message plain."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelname)
        if not color:
            return super().format(record)

        original = record.levelname
        record.levelname = f"{color}{original}{Style.RESET_ALL}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def _console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _file_handler(
    log_file: str,
    level: int,
    formatter: logging.Formatter,
    max_bytes: int,
    backup_count: int
) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logger(
    level: str = "INFO",
    log_format: Optional[str] = None,
    date_format: Optional[str] = None,
    log_file: Optional[str] = None,
    max_bytes: int = 10485760,
    backup_count: int = 5,
    colorize: bool = True
) -> logging.Logger:
    """
    Install console (and optionally file) handlers on the package logger.

    Calling it again replaces the previous handlers.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        log_format: logging format string.
        date_format: strftime format for %(asctime)s.
        log_file: Rotating log file path; None disables file logging.
        max_bytes: Rotation threshold for the log file.
        backup_count: Rotated files to keep.
        colorize: Colour level names on the console.

    Returns:
        The "voucher_ocr" logger.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    log_format = log_format or DEFAULT_FORMAT
    date_format = date_format or DEFAULT_DATE_FORMAT
    formatter_class = ColoredFormatter if colorize else logging.Formatter

    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(numeric_level)
    package_logger.handlers.clear()
    package_logger.addHandler(
        _console_handler(numeric_level, formatter_class(log_format, datefmt=date_format))
    )

    if log_file:
        package_logger.addHandler(_file_handler(
            log_file,
            numeric_level,
            logging.Formatter(log_format, datefmt=date_format),
            max_bytes,
            backup_count
        ))

    package_logger.propagate = False
    package_logger.debug(f"Logging initialized at {logging.getLevelName(numeric_level)}")
    return package_logger


def set_level(level: int) -> None:
    """Change the level of the package logger and all of its handlers."""
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    for handler in package_logger.handlers:
        handler.setLevel(level)


def get_logger(name: str) -> logging.Logger:
    """Logger for a module, always inside the voucher_ocr hierarchy."""
    if name == ROOT_LOGGER_NAME or name.startswith(f"{ROOT_LOGGER_NAME}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_logger_from_config() -> logging.Logger:
    """Call setup_logger() with the "logging" section of settings.yaml."""
    from config import ConfigurationManager

    settings = ConfigurationManager().section("logging")
    file_settings = settings.get("file") or {}
    console_settings = settings.get("console") or {}

    return setup_logger(
        level=settings.get("level", "INFO"),
        log_format=settings.get("format"),
        date_format=settings.get("date_format"),
        log_file=ConfigurationManager().get("paths.log_file") if file_settings.get("enabled") else None,
        max_bytes=file_settings.get("max_bytes", 10485760),
        backup_count=file_settings.get("backup_count", 5),
        colorize=console_settings.get("colorize", True)
    )
