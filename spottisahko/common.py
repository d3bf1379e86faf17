#!/usr/bin/env python3
"""
Common date utilities shared across the fetcher, statistics and runners.

All calendar-date boundaries are UTC midnights.
"""

import argparse
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Tuple, Union


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc_date(value: Union[date, datetime]) -> date:
    """
    Reduce a date or datetime to its UTC calendar date.

    Aware datetimes are converted to UTC first. Naive datetimes are
    assumed to already be UTC.

    Args:
        value: date or datetime

    Returns:
        date object
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def utc_day_bounds(value: Union[date, datetime]) -> Tuple[datetime, datetime]:
    """
    Get the [00:00, 24:00) UTC window of a calendar date.

    Args:
        value: date or datetime (time of day is ignored)

    Returns:
        Tuple of (day_start, day_end) as aware UTC datetimes
    """
    day = to_utc_date(value)
    day_start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return day_start, day_start + timedelta(days=1)


def parse_date(date_str: str) -> date:
    """
    Parse date string in YYYY-MM-DD format.

    Used as an argparse ``type=`` callable.

    Args:
        date_str: Date string in YYYY-MM-DD format

    Returns:
        date object

    Raises:
        argparse.ArgumentTypeError: If date format is invalid
    """
    try:
        return datetime.strptime(date_str, '%Y-%m-%d').date()
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"Invalid date format '{date_str}'. Expected YYYY-MM-DD"
        )


def date_range(start_date: date, end_date: date) -> Iterator[date]:
    """
    Generate dates between start_date and end_date (inclusive).

    Args:
        start_date: Start date
        end_date: End date

    Yields:
        date objects for each date in range
    """
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def validate_date_range(start_date: date, end_date: date) -> None:
    """
    Validate that start_date is before or equal to end_date.

    Raises:
        ValueError: If validation fails
    """
    if start_date > end_date:
        raise ValueError(
            f"Start date ({start_date}) must be before or equal to end date ({end_date})"
        )
