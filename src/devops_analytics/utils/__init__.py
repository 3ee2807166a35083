"""Utility modules for DevOps Analytics."""

from .date_utils import (
    WeekRule,
    format_timestamp,
    parse_api_datetime,
    resolve_timezone,
    to_local,
    week_of_year,
)

__all__ = [
    "WeekRule",
    "format_timestamp",
    "parse_api_datetime",
    "resolve_timezone",
    "to_local",
    "week_of_year",
]
