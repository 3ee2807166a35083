"""Date utility functions for API timestamps and calendar projections.

Azure DevOps returns UTC timestamps as ISO-8601 strings, sometimes with
seven fractional digits. These helpers parse them, convert them to the
configured reporting timezone and derive week numbers under an explicit,
host-independent week rule.
"""

from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from dateutil.parser import parse

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


class WeekRule(str, Enum):
    """Week numbering rules supported for the ``weekofyear`` column."""

    ISO = "iso"
    FIRST_DAY = "first-day"


def parse_api_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an API timestamp into a timezone-aware UTC datetime.

    Args:
        value: ISO-8601 string as returned by the REST API, or None.

    Returns:
        Aware UTC datetime, or None when the value is empty or is the
        ``0001-01-01`` placeholder the API uses for unset dates.
    """
    if not value:
        return None

    parsed = parse(value)
    if parsed.year <= 1:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """Resolve a timezone name for projections.

    ``None`` and ``"local"`` mean the host's local zone (returned as None so
    that ``datetime.astimezone()`` picks it up).

    Raises:
        zoneinfo.ZoneInfoNotFoundError: If the name is not a known zone.
    """
    if name is None or name.lower() == "local":
        return None
    if name.upper() == "UTC":
        return timezone.utc
    return ZoneInfo(name)


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert an aware datetime to the reporting timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


def week_of_year(value: datetime, rule: WeekRule = WeekRule.ISO) -> int:
    """Return the week number of ``value`` under ``rule``.

    ``ISO`` is ISO-8601 (weeks start Monday, week 1 holds the first Thursday).
    ``FIRST_DAY`` starts weeks on Sunday with week 1 holding January 1st,
    which is what en-US calendars report.
    """
    if rule is WeekRule.ISO:
        return value.isocalendar()[1]

    jan_first = value.replace(month=1, day=1)
    # Sunday-based weekday of January 1st (Sunday=0)
    offset = (jan_first.weekday() + 1) % 7
    return (value.timetuple().tm_yday - 1 + offset) // 7 + 1


def format_timestamp(value: Optional[datetime], tz: Optional[tzinfo] = None) -> str:
    """Render a timestamp for CSV output, empty when missing."""
    if value is None:
        return ""
    return to_local(value, tz).strftime(DISPLAY_FORMAT)
