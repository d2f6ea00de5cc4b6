"""
Date/time helpers

CRITICAL RULES:
- Backend timestamps are UTC and timezone-aware
- Never compare naive and aware datetimes; normalise with to_utc() first
"""

import logging
from datetime import date, datetime, time
from typing import Union
from zoneinfo import ZoneInfo

logger = logging.getLogger(__name__)

UTC = ZoneInfo("UTC")


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(UTC)


def to_utc(value: Union[datetime, date]) -> datetime:
    """
    Convert a datetime (or a date, taken as midnight) to aware UTC

    Naive datetimes are assumed to already be UTC.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        logger.debug(f"Received naive datetime, assuming UTC: {value}")
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def end_of_day_utc(value: date) -> datetime:
    """Last representable instant of a calendar day, in UTC"""
    return datetime.combine(value, time.max, tzinfo=UTC)


def inclusive_utc_range(
    start: Union[datetime, date],
    end: Union[datetime, date]
) -> tuple[datetime, datetime]:
    """
    Inclusive UTC bounds for a range query

    A bare end date covers that whole day.
    """
    lower = to_utc(start)
    upper = to_utc(end) if isinstance(end, datetime) else end_of_day_utc(end)
    return lower, upper
