"""Unit tests for hour and weekday grouping."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from analytics.temporal_grouping import group_by_day_of_week, group_by_hour
from tests.event_factory import record


def _timestamp(*parts: int) -> int:
    return int(datetime(*parts, tzinfo=timezone.utc).timestamp())


def test_group_by_hour_fills_every_hour() -> None:
    """Hour grouping should always return 24 buckets."""
    buckets = group_by_hour([record("r1", _timestamp(2024, 3, 3, 10, 15))])

    assert [bucket.hour for bucket in buckets] == list(range(24))


def test_group_by_hour_totals_and_averages() -> None:
    """Records in one hour should sum and average together."""
    records = [
        record("r1", _timestamp(2024, 3, 3, 10, 5), amount=100),
        record("r2", _timestamp(2024, 3, 4, 10, 55), amount=300),
    ]

    bucket = group_by_hour(records)[10]

    assert (bucket.total_amount, bucket.record_count, bucket.average_amount) == (400, 2, 200.0)


def test_group_by_hour_reads_hours_in_local_zone() -> None:
    """Hours should follow the requested time zone."""
    eastern = timezone(timedelta(hours=-5))

    buckets = group_by_hour([record("r1", _timestamp(2024, 3, 3, 2, 0))], tz=eastern)

    assert buckets[21].record_count == 1


def test_group_by_day_of_week_starts_on_sunday() -> None:
    """Sunday should be bucket zero."""
    buckets = group_by_day_of_week([record("r1", _timestamp(2024, 3, 3, 12, 0), amount=50)])

    assert (len(buckets), buckets[0].day_name, buckets[0].total_amount) == (7, "Sunday", 50)


def test_empty_buckets_average_zero() -> None:
    """Empty buckets should report a zero average."""
    buckets = group_by_day_of_week([])

    assert all(bucket.average_amount == 0.0 for bucket in buckets)
