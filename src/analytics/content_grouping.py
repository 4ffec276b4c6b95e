"""Earnings per content, content kind, and actor.

This module aggregates record amounts by the content they pay for,
by that content's kind, and by the paying actor.
"""

from __future__ import annotations

from typing import Sequence

from core.constants import KIND_NAMES
from core.types import (
    ActorProfile,
    ActorRanking,
    ContentEarnings,
    ContentRef,
    KindEarnings,
    ParsedRecord,
)


def group_by_content(records: Sequence[ParsedRecord]) -> tuple[ContentEarnings, ...]:
    """Aggregate amounts per referenced content, largest first.

    Records without a content reference are skipped.
    """
    contents: dict[str, ContentRef] = {}
    totals: dict[str, int] = {}
    counts: dict[str, int] = {}
    for record in records:
        content = record.target_content
        if content is None:
            continue
        contents.setdefault(content.content_id, content)
        totals[content.content_id] = totals.get(content.content_id, 0) + record.amount
        counts[content.content_id] = counts.get(content.content_id, 0) + 1
    grouped = [
        ContentEarnings(
            content_id=content_id,
            kind=content.kind,
            author=content.author,
            body=content.body,
            created_at=content.created_at,
            total_amount=totals[content_id],
            record_count=counts[content_id],
        )
        for content_id, content in contents.items()
    ]
    grouped.sort(key=lambda item: (-item.total_amount, item.content_id))
    return tuple(grouped)


def group_by_kind(records: Sequence[ParsedRecord]) -> tuple[KindEarnings, ...]:
    """Aggregate amounts per content kind, largest first.

    Percentages are shares of the grand total of all records, so
    records without content lower every share.
    """
    grand_total = sum(record.amount for record in records)
    totals: dict[int, int] = {}
    counts: dict[int, int] = {}
    for record in records:
        if record.target_content is None:
            continue
        kind = record.target_content.kind
        totals[kind] = totals.get(kind, 0) + record.amount
        counts[kind] = counts.get(kind, 0) + 1
    grouped = [
        KindEarnings(
            kind=kind,
            kind_name=kind_name(kind),
            total_amount=total,
            record_count=counts[kind],
            percentage=(total / grand_total * 100) if grand_total > 0 else 0.0,
        )
        for kind, total in totals.items()
    ]
    grouped.sort(key=lambda item: (-item.total_amount, item.kind))
    return tuple(grouped)


def rank_actors(records: Sequence[ParsedRecord]) -> tuple[ActorRanking, ...]:
    """Aggregate amounts per paying actor, largest first."""
    profiles: dict[str, ActorProfile] = {}
    totals: dict[str, int] = {}
    counts: dict[str, int] = {}
    for record in records:
        actor_id = record.actor.actor_id
        profiles.setdefault(actor_id, record.actor)
        totals[actor_id] = totals.get(actor_id, 0) + record.amount
        counts[actor_id] = counts.get(actor_id, 0) + 1
    ranking = [
        ActorRanking(actor=profile, total_amount=totals[actor_id], record_count=counts[actor_id])
        for actor_id, profile in profiles.items()
    ]
    ranking.sort(key=lambda item: (-item.total_amount, item.actor.actor_id))
    return tuple(ranking)


def kind_name(kind: int) -> str:
    return KIND_NAMES.get(kind, f"Kind {kind}")
