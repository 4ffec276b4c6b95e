"""Unit tests for time-series period grouping."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from analytics.period_grouping import SUPPORTED_GRANULARITIES, group_by_period
from core.errors import ZaplyticsAnalyticsError
from tests.event_factory import record


def _timestamp(*parts: int) -> int:
    return int(datetime(*parts, tzinfo=timezone.utc).timestamp())


_RECORDS = [
    record("r1", _timestamp(2024, 2, 28, 23, 30), amount=10),
    record("r2", _timestamp(2024, 3, 3, 10, 5), amount=20),
    record("r3", _timestamp(2024, 3, 3, 10, 45), amount=30),
    record("r4", _timestamp(2024, 3, 6, 8, 0), amount=40),
]


@pytest.mark.parametrize("granularity", SUPPORTED_GRANULARITIES)
def test_period_totals_sum_to_window_total(granularity: str) -> None:
    """Bucket totals should add up to the total of all records."""
    buckets = group_by_period(_RECORDS, granularity)

    assert sum(bucket.total_amount for bucket in buckets) == 100


def test_hour_buckets_use_hour_labels() -> None:
    """Hour buckets should merge records within the same hour."""
    buckets = group_by_period(_RECORDS, "hour")

    assert [(bucket.period, bucket.record_count) for bucket in buckets] == [
        ("2024-02-28T23:00", 1),
        ("2024-03-03T10:00", 2),
        ("2024-03-06T08:00", 1),
    ]


def test_week_buckets_start_on_sunday() -> None:
    """A Wednesday record should fall in the week starting the prior Sunday."""
    buckets = group_by_period(_RECORDS, "week")

    assert [bucket.period for bucket in buckets] == ["2024-02-25", "2024-03-03"]


def test_month_buckets_are_sorted_ascending() -> None:
    """Month buckets should be ordered by start."""
    buckets = group_by_period(list(reversed(_RECORDS)), "month")

    assert [(bucket.period, bucket.total_amount) for bucket in buckets] == [
        ("2024-02", 10),
        ("2024-03", 90),
    ]


def test_unsupported_granularity_raises() -> None:
    """Unknown granularities should fail with an analytics error."""
    with pytest.raises(ZaplyticsAnalyticsError, match="Unsupported period granularity"):
        group_by_period(_RECORDS, "quarter")
