"""Actor loyalty segmentation.

This module derives per-actor engagement spans and gaps, assigns each
actor a loyalty segment, and summarizes the segments.

Segments are checked in order: ``one-time`` for a single record,
``whale`` at or above the lifetime amount threshold, ``regular`` for
frequent actors, and ``occasional`` for everyone else.
"""

from __future__ import annotations

from typing import Sequence

from core.constants import (
    DEFAULT_WHALE_THRESHOLD,
    FREQUENT_MAX_GAP_DAYS,
    FREQUENT_MIN_RECORDS,
    REGULAR_MIN_RECORDS,
    SECONDS_PER_DAY,
    TOP_LOYAL_ACTOR_LIMIT,
)
from core.types import ActorLoyalty, ActorProfile, LoyaltyStats, ParsedRecord

ONE_TIME = "one-time"
WHALE = "whale"
REGULAR = "regular"
OCCASIONAL = "occasional"


def classify_actor(
    record_count: int,
    total_amount: int,
    average_days_between: float,
    whale_threshold: int = DEFAULT_WHALE_THRESHOLD,
) -> str:
    """Assign a loyalty segment from engagement figures."""
    if record_count <= 1:
        return ONE_TIME
    if total_amount >= whale_threshold:
        return WHALE
    if record_count >= REGULAR_MIN_RECORDS:
        return REGULAR
    if record_count >= FREQUENT_MIN_RECORDS and average_days_between <= FREQUENT_MAX_GAP_DAYS:
        return REGULAR
    return OCCASIONAL


def actor_loyalty(
    records: Sequence[ParsedRecord],
    whale_threshold: int = DEFAULT_WHALE_THRESHOLD,
) -> tuple[ActorLoyalty, ...]:
    """Compute loyalty figures for every actor in the records.

    Args:
        records: Window records.
        whale_threshold: Lifetime amount that marks a whale.

    Returns:
        One entry per actor, most engaged first.
    """
    profiles: dict[str, ActorProfile] = {}
    timestamps: dict[str, list[int]] = {}
    totals: dict[str, int] = {}
    for record in records:
        actor_id = record.actor.actor_id
        profiles.setdefault(actor_id, record.actor)
        timestamps.setdefault(actor_id, []).append(record.created_at)
        totals[actor_id] = totals.get(actor_id, 0) + record.amount
    entries: list[ActorLoyalty] = []
    for actor_id, actor_timestamps in timestamps.items():
        first_seen = min(actor_timestamps)
        last_seen = max(actor_timestamps)
        span_days = (last_seen - first_seen) / SECONDS_PER_DAY
        record_count = len(actor_timestamps)
        average_gap = span_days / (record_count - 1) if record_count > 1 else 0.0
        entries.append(
            ActorLoyalty(
                actor=profiles[actor_id],
                record_count=record_count,
                total_amount=totals[actor_id],
                first_seen=first_seen,
                last_seen=last_seen,
                days_between_first_and_last=span_days,
                average_days_between=average_gap,
                category=classify_actor(
                    record_count, totals[actor_id], average_gap, whale_threshold
                ),
            )
        )
    entries.sort(key=lambda entry: (-entry.record_count, -entry.total_amount, entry.actor.actor_id))
    return tuple(entries)


def analyze_loyalty(
    records: Sequence[ParsedRecord],
    whale_threshold: int = DEFAULT_WHALE_THRESHOLD,
    top_limit: int = TOP_LOYAL_ACTOR_LIMIT,
) -> LoyaltyStats:
    """Summarize loyalty segments for a window.

    Args:
        records: Window records.
        whale_threshold: Lifetime amount that marks a whale.
        top_limit: Size of the top loyal actor list.

    Returns:
        Segment counts, average lifetime value, and top returning actors.
    """
    entries = actor_loyalty(records, whale_threshold)
    new_actors = sum(1 for entry in entries if entry.category == ONE_TIME)
    grand_total = sum(entry.total_amount for entry in entries)
    returning = tuple(entry for entry in entries if entry.category != ONE_TIME)
    return LoyaltyStats(
        new_actors=new_actors,
        returning_actors=len(entries) - new_actors,
        regular_supporters=sum(1 for entry in entries if entry.is_regular),
        average_lifetime_value=grand_total / len(entries) if entries else 0.0,
        top_loyal_actors=returning[:top_limit],
    )
