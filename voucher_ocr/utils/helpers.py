"""
Small helpers shared by the pipeline, the harness and the CLI.

    ensure_directory    mkdir -p, returning the Path
    generate_timestamp  local time for report file names
    parse_date          observation dates from the CLI or a caller
    format_date         dates back to YYYY-MM-DD for JSON output
    image_digest        SHA-256 key for recorded responses
"""

import hashlib
from datetime import date, datetime
from pathlib import Path
from typing import Optional, Union

from dateutil import parser as date_parser


def ensure_directory(path: Union[str, Path]) -> Path:
    """Create ``path`` (and parents) when missing and return it as a Path."""
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def generate_timestamp(fmt: str = "%Y%m%d_%H%M%S") -> str:
    """Current local time rendered with ``fmt``, e.g. 20260121_142501."""
    return datetime.now().strftime(fmt)


def parse_date(value: Union[str, date, datetime]) -> date:
    """
    Parse a date given as an ISO string, date or datetime.

    Args:
        value: "2025-12-22", "2025-12-22T10:00:00", a date or a datetime.

    Returns:
        The calendar date.

    Raises:
        ValueError: If the string is not an ISO date.

    Example:
        >>> parse_date("2025-12-22")
        datetime.date(2025, 12, 22)
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date_parser.isoparse(value.strip()).date()


def format_date(value: Optional[date]) -> Optional[str]:
    """Render a date as YYYY-MM-DD, passing None through."""
    if value is None:
        return None
    return value.isoformat()


def image_digest(image_bytes: bytes) -> str:
    """Return the hex SHA-256 digest of raw image bytes."""
    return hashlib.sha256(image_bytes).hexdigest()
