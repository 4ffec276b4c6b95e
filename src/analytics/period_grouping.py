"""Time-series earnings buckets.

This module groups records into hour, day, week, or month buckets
ordered by bucket start. Weeks start on Sunday.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Sequence

from analytics.temporal_grouping import local_datetime, sunday_based_weekday
from core.errors import ZaplyticsAnalyticsError
from core.types import ParsedRecord, PeriodEarnings

SUPPORTED_GRANULARITIES = ("hour", "day", "week", "month")


def group_by_period(
    records: Sequence[ParsedRecord],
    granularity: str,
    tz: tzinfo = timezone.utc,
) -> tuple[PeriodEarnings, ...]:
    """Aggregate records into non-empty period buckets.

    Args:
        records: Window records.
        granularity: One of hour, day, week, or month.
        tz: Time zone bucket boundaries are computed in.

    Returns:
        Buckets ascending by start.

    Raises:
        ZaplyticsAnalyticsError: If the granularity is unsupported.
    """
    if granularity not in SUPPORTED_GRANULARITIES:
        supported = ", ".join(SUPPORTED_GRANULARITIES)
        raise ZaplyticsAnalyticsError(
            f"Unsupported period granularity '{granularity}'. Choose one of: {supported}."
        )
    totals: dict[datetime, int] = defaultdict(int)
    counts: dict[datetime, int] = defaultdict(int)
    for record in records:
        start = period_start(local_datetime(record.created_at, tz), granularity)
        totals[start] += record.amount
        counts[start] += 1
    return tuple(
        PeriodEarnings(
            period=period_label(start, granularity),
            start=start,
            total_amount=totals[start],
            record_count=counts[start],
        )
        for start in sorted(totals)
    )


def period_start(moment: datetime, granularity: str) -> datetime:
    """Truncate a local time to the start of its bucket."""
    day_start = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    if granularity == "hour":
        return moment.replace(minute=0, second=0, microsecond=0)
    if granularity == "day":
        return day_start
    if granularity == "week":
        return day_start - timedelta(days=sunday_based_weekday(moment))
    return day_start.replace(day=1)


def period_label(start: datetime, granularity: str) -> str:
    if granularity == "hour":
        return start.strftime("%Y-%m-%dT%H:00")
    if granularity == "month":
        return start.strftime("%Y-%m")
    return start.strftime("%Y-%m-%d")
