"""Utility helpers."""

from .concurrency import fetch_concurrently
from .date_utils import (
    days_between,
    end_of_day_exclusive,
    month_bounds,
    parse_date,
    parse_timestamp,
)
from .logging_utils import setup_logging

__all__ = [
    "parse_timestamp",
    "parse_date",
    "days_between",
    "month_bounds",
    "end_of_day_exclusive",
    "fetch_concurrently",
    "setup_logging",
]
