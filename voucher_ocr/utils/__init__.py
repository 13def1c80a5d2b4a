"""
Utility Module for the Voucher OCR System.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - Date and file helpers
"""

from .logger import setup_logger, setup_logger_from_config, set_level, get_logger
from .helpers import ensure_directory, generate_timestamp, parse_date, format_date, image_digest

__all__ = [
    'setup_logger',
    'setup_logger_from_config',
    'set_level',
    'get_logger',
    'ensure_directory',
    'generate_timestamp',
    'parse_date',
    'format_date',
    'image_digest'
]
