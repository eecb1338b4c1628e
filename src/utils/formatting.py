"""
Formatting utilities for report output.

Provides common formatting functions for numbers, timestamps and other
display values.
"""

from datetime import datetime, timezone
from typing import Optional


def format_number(num: int) -> str:
    """
    Format number with thousands separators.

    Args:
        num: Integer to format

    Returns:
        Formatted number string with commas (e.g., "1,234,567")

    Examples:
        >>> format_number(1234567)
        '1,234,567'
        >>> format_number(0)
        '0'
    """
    return f"{num:,}"


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def format_time_ago(moment: Optional[datetime], now: Optional[datetime] = None) -> str:
    """
    Describe how long ago a moment was, in the largest whole unit.

    Args:
        moment: Timestamp to describe (naive values are treated as UTC)
        now: Reference time (defaults to the current time)

    Returns:
        Relative description, or an empty string when ``moment`` is None

    Examples:
        >>> from datetime import datetime, timezone
        >>> now = datetime(2025, 1, 2, 12, 0, tzinfo=timezone.utc)
        >>> format_time_ago(datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc), now)
        '3 hours ago'
        >>> format_time_ago(datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc), now)
        '1 day ago'
    """
    if moment is None:
        return ""

    now = now or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    seconds = int((now - moment).total_seconds())
    if seconds < 60:
        return "less than a minute ago"

    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            return f"{_plural(seconds // size, unit)} ago"

    return "less than a minute ago"


def format_timestamp(moment: Optional[datetime]) -> str:
    """Format a timestamp for display, or an empty string when missing."""
    if moment is None:
        return ""
    return moment.strftime("%Y-%m-%d %H:%M:%S %Z").strip()
