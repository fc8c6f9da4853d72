"""
Date and timestamp helpers for rows read from storage.

Rows arrive with ISO8601 strings in a few shapes (date only, naive
timestamps, ``Z`` or offset suffixes), so parsing goes through dateutil.
"""

import calendar
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from dateutil import parser as date_parser


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a stored timestamp into an aware datetime.

    Naive values are taken as UTC. Returns None for missing or
    unparseable values.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        try:
            parsed = date_parser.isoparse(str(value))
        except (ValueError, OverflowError):
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date(value: Any) -> Optional[date]:
    """Parse a stored date (or timestamp) into a date."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = parse_timestamp(value)
    return parsed.date() if parsed else None


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from earlier to later (floored)."""
    return math.floor((later - earlier).total_seconds() / 86400)


def month_bounds(day: date) -> tuple[date, date]:
    """First and last day of the month containing day."""
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def end_of_day_exclusive(day: date) -> date:
    """The day after day, for half-open range filters."""
    return day + timedelta(days=1)
