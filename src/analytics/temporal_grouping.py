"""Hour-of-day and day-of-week earnings patterns.

This module buckets records by local hour and weekday. Every bucket is
always present so charts and exports have a fixed shape.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Sequence

from core.constants import DAY_NAMES
from core.types import DayOfWeekEarnings, HourEarnings, ParsedRecord


def group_by_hour(
    records: Sequence[ParsedRecord], tz: tzinfo = timezone.utc
) -> tuple[HourEarnings, ...]:
    """Aggregate records into 24 hour-of-day buckets.

    Args:
        records: Window records.
        tz: Time zone the hours are read in.

    Returns:
        Buckets for hours 0-23, zero-filled.
    """
    totals = [0] * 24
    counts = [0] * 24
    for record in records:
        hour = local_datetime(record.created_at, tz).hour
        totals[hour] += record.amount
        counts[hour] += 1
    return tuple(
        HourEarnings(
            hour=hour,
            total_amount=totals[hour],
            record_count=counts[hour],
            average_amount=_mean(totals[hour], counts[hour]),
        )
        for hour in range(24)
    )


def group_by_day_of_week(
    records: Sequence[ParsedRecord], tz: tzinfo = timezone.utc
) -> tuple[DayOfWeekEarnings, ...]:
    """Aggregate records into 7 weekday buckets, 0 being Sunday.

    Args:
        records: Window records.
        tz: Time zone the days are read in.

    Returns:
        Buckets for Sunday through Saturday, zero-filled.
    """
    totals = [0] * 7
    counts = [0] * 7
    for record in records:
        day = sunday_based_weekday(local_datetime(record.created_at, tz))
        totals[day] += record.amount
        counts[day] += 1
    return tuple(
        DayOfWeekEarnings(
            day_of_week=day,
            day_name=DAY_NAMES[day],
            total_amount=totals[day],
            record_count=counts[day],
            average_amount=_mean(totals[day], counts[day]),
        )
        for day in range(7)
    )


def local_datetime(timestamp: int, tz: tzinfo) -> datetime:
    return datetime.fromtimestamp(timestamp, tz=tz)


def sunday_based_weekday(moment: datetime) -> int:
    """Return the weekday with Sunday as 0."""
    return (moment.weekday() + 1) % 7


def _mean(total: int, count: int) -> float:
    return total / count if count else 0.0
