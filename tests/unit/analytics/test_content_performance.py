"""Unit tests for per-content engagement timing."""

from __future__ import annotations

import pytest

from analytics.content_performance import analyze_content_performance, peak_window_hours
from core.types import ContentRef
from tests.event_factory import record

HOUR = 3600
CREATED = 1_700_000_000
_NOTE = ContentRef(content_id="note-1", kind=1, author="owner", body="gm", created_at=CREATED)


def test_content_performance_timing_metrics() -> None:
    """Timing metrics should be measured from content creation."""
    records = [
        record("r1", CREATED + 600, amount=100, content=_NOTE),
        record("r2", CREATED + 2 * HOUR, amount=50, content=_NOTE),
        record("r3", CREATED + 30 * HOUR, amount=25, content=_NOTE),
    ]

    performance = analyze_content_performance(records)[0]

    assert (
        performance.time_to_first_engagement,
        performance.longevity_days,
        performance.virality_score,
        performance.peak_window_hours,
        performance.average_amount,
    ) == (
        600,
        pytest.approx((30 * HOUR - 600) / 86_400),
        pytest.approx(100 / 3),
        72,
        pytest.approx(175 / 3),
    )


def test_peak_window_is_smallest_window_reaching_maximum() -> None:
    """All amount inside the first hour should give a one-hour peak."""
    records = [
        record("r1", CREATED + 60, content=_NOTE),
        record("r2", CREATED + 1800, content=_NOTE),
    ]

    assert peak_window_hours(_NOTE, records) == 1


def test_peak_window_is_zero_when_nothing_lands_in_windows() -> None:
    """Records older than every window should give no peak."""
    records = [record("r1", CREATED + 100 * HOUR, content=_NOTE)]

    assert peak_window_hours(_NOTE, records) == 0


def test_unresolved_content_is_not_measured() -> None:
    """Placeholders without a creation time should be skipped."""
    placeholder = ContentRef(content_id="note-2", kind=1, author="owner")

    performance = analyze_content_performance([record("r1", CREATED, content=placeholder)])

    assert performance == ()
