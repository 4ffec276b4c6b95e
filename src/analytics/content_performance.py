"""Engagement timing metrics per content item.

This module measures how quickly and for how long each piece of
content attracted payments. Only content with a known creation time
is measured.
"""

from __future__ import annotations

from typing import Sequence

from core.constants import (
    PEAK_WINDOW_HOURS,
    SECONDS_PER_DAY,
    SECONDS_PER_HOUR,
    VIRALITY_WINDOW_SECONDS,
)
from core.types import ContentPerformance, ContentRef, ParsedRecord


def analyze_content_performance(records: Sequence[ParsedRecord]) -> tuple[ContentPerformance, ...]:
    """Compute timing metrics for every resolved content item.

    Args:
        records: Joined window records.

    Returns:
        Metrics per content, highest total first.
    """
    contents: dict[str, ContentRef] = {}
    grouped: dict[str, list[ParsedRecord]] = {}
    for record in records:
        content = record.target_content
        if content is None or not content.is_resolved:
            continue
        contents.setdefault(content.content_id, content)
        grouped.setdefault(content.content_id, []).append(record)
    performance = [
        measure_content(contents[content_id], content_records)
        for content_id, content_records in grouped.items()
    ]
    performance.sort(key=lambda item: (-item.total_amount, item.content.content_id))
    return tuple(performance)


def measure_content(content: ContentRef, records: Sequence[ParsedRecord]) -> ContentPerformance:
    """Compute timing metrics for one content item and its records."""
    timestamps = sorted(record.created_at for record in records)
    total_amount = sum(record.amount for record in records)
    within_virality = sum(
        1 for timestamp in timestamps if timestamp - content.created_at <= VIRALITY_WINDOW_SECONDS
    )
    return ContentPerformance(
        content=content,
        total_amount=total_amount,
        record_count=len(records),
        time_to_first_engagement=max(timestamps[0] - content.created_at, 0),
        longevity_days=(timestamps[-1] - timestamps[0]) / SECONDS_PER_DAY,
        virality_score=within_virality / len(records) * 100,
        peak_window_hours=peak_window_hours(content, records),
        average_amount=total_amount / len(records),
    )


def peak_window_hours(content: ContentRef, records: Sequence[ParsedRecord]) -> int:
    """Return the smallest window after creation that captures the most amount.

    Windows grow cumulatively, so the largest window always holds the
    maximum; the result is the earliest window that already reached it,
    or 0 when nothing landed inside the largest window.
    """
    cumulative = {
        hours: sum(
            record.amount
            for record in records
            if record.created_at - content.created_at <= hours * SECONDS_PER_HOUR
        )
        for hours in PEAK_WINDOW_HOURS
    }
    best_amount = max(cumulative.values())
    if best_amount <= 0:
        return 0
    return next(hours for hours in PEAK_WINDOW_HOURS if cumulative[hours] == best_amount)
