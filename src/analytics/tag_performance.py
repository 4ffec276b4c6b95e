"""Hashtag performance.

This module extracts hashtags from resolved content bodies and
aggregates the payments each tag attracted across its posts.
"""

from __future__ import annotations

import re
from typing import Sequence

from core.constants import MIN_TAG_RECORDS
from core.types import ContentRef, ParsedRecord, TagPerformance

_HASHTAG_PATTERN = re.compile(r"#(\w+)")


def extract_hashtags(body: str) -> frozenset[str]:
    """Return distinct lowercased ``#tag`` tokens in a text."""
    return frozenset(f"#{match.lower()}" for match in _HASHTAG_PATTERN.findall(body))


def analyze_tag_performance(
    records: Sequence[ParsedRecord],
    min_records: int = MIN_TAG_RECORDS,
) -> tuple[TagPerformance, ...]:
    """Aggregate payments per hashtag, highest total first.

    Args:
        records: Joined window records.
        min_records: Tags with fewer records are dropped.

    Returns:
        One entry per qualifying tag.
    """
    tag_posts: dict[str, dict[str, ContentRef]] = {}
    post_records: dict[str, list[ParsedRecord]] = {}
    for record in records:
        content = record.target_content
        if content is None or not content.body:
            continue
        post_records.setdefault(content.content_id, []).append(record)
        for tag in extract_hashtags(content.body):
            tag_posts.setdefault(tag, {}).setdefault(content.content_id, content)
    performance = [
        _measure_tag(tag, posts, post_records)
        for tag, posts in tag_posts.items()
    ]
    qualifying = [item for item in performance if item.record_count >= min_records]
    qualifying.sort(key=lambda item: (-item.total_amount, item.tag))
    return tuple(qualifying)


def _measure_tag(
    tag: str,
    posts: dict[str, ContentRef],
    post_records: dict[str, list[ParsedRecord]],
) -> TagPerformance:
    total_amount = 0
    record_count = 0
    successful_posts = 0
    first_engagement_delays: list[int] = []
    for content_id, content in posts.items():
        records = post_records[content_id]
        total_amount += sum(record.amount for record in records)
        record_count += len(records)
        if len(records) > 1:
            successful_posts += 1
        if content.is_resolved:
            first_engagement = min(record.created_at for record in records)
            first_engagement_delays.append(max(first_engagement - content.created_at, 0))
    return TagPerformance(
        tag=tag,
        total_amount=total_amount,
        record_count=record_count,
        post_count=len(posts),
        average_amount=total_amount / record_count if record_count else 0.0,
        average_time_to_first_engagement=(
            sum(first_engagement_delays) / len(first_engagement_delays)
            if first_engagement_delays
            else 0.0
        ),
        success_rate=successful_posts / len(posts) * 100 if posts else 0.0,
    )
