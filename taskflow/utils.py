"""
Utility functions for the TaskFlow CLI.
"""

from datetime import datetime
from typing import Optional

from taskflow.constants import DATETIME_DISPLAY_FORMAT, DATETIME_INPUT_FORMATS


def parse_datetime(value: str) -> Optional[datetime]:
    """
    Parse a date/time string using the supported formats.

    Args:
        value: The string to parse.

    Returns:
        A datetime object if parsing succeeds, None otherwise.

    Examples:
        >>> parse_datetime("2025-03-01")           # midnight
        >>> parse_datetime("2025-03-01 14:30")
        >>> parse_datetime("2025-03-01T14:30:00")
    """
    for fmt in DATETIME_INPUT_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def format_datetime(value: Optional[datetime]) -> str:
    """Format a datetime for display, '-' when unset."""
    if value is None:
        return "-"
    return value.strftime(DATETIME_DISPLAY_FORMAT)


def to_naive_local(value: Optional[datetime]) -> Optional[datetime]:
    """
    Convert a timezone-aware datetime to naive local time.

    The engine compares against naive local instants from the clock, so
    aware values (e.g. imported "2025-01-01T00:00:00Z") are shifted into
    the local zone and stripped. Naive values pass through unchanged.
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
