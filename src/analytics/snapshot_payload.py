"""JSON-safe serialization for analytic snapshots.

This module renders snapshots as plain dictionaries for export
formatters and the CLI. Consumers treat the payload as read-only.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from pathlib import Path

from core.types import (
    ActorProfile,
    AnalyticSnapshot,
    ContentRef,
    LoadingState,
    ParsedRecord,
    Window,
)


def snapshot_to_payload(
    snapshot: AnalyticSnapshot, include_records: bool = False
) -> dict[str, object]:
    """Serialize a snapshot into a JSON-safe payload.

    Args:
        snapshot: Snapshot to serialize.
        include_records: Whether to add every window record.

    Returns:
        Dictionary payload for JSON encoding.
    """
    loyalty = snapshot.loyalty
    payload: dict[str, object] = {
        "user_id": snapshot.user_id,
        "window": window_to_payload(snapshot.window),
        "generated_at": snapshot.generated_at.isoformat(),
        "summary": {
            "total_amount": snapshot.total_amount,
            "record_count": snapshot.record_count,
            "unique_actors": snapshot.unique_actors,
        },
        "period_granularity": snapshot.period_granularity,
        "earnings_by_period": [
            {
                "period": item.period,
                "start": item.start.isoformat(),
                "total_amount": item.total_amount,
                "record_count": item.record_count,
            }
            for item in snapshot.earnings_by_period
        ],
        "earnings_by_hour": [asdict(item) for item in snapshot.earnings_by_hour],
        "earnings_by_day_of_week": [asdict(item) for item in snapshot.earnings_by_day_of_week],
        "top_content": [asdict(item) for item in snapshot.top_content],
        "earnings_by_kind": [asdict(item) for item in snapshot.earnings_by_kind],
        "top_actors": [
            {
                **actor_to_payload(item.actor),
                "total_amount": item.total_amount,
                "record_count": item.record_count,
            }
            for item in snapshot.top_actors
        ],
        "loyalty": {
            "new_actors": loyalty.new_actors,
            "returning_actors": loyalty.returning_actors,
            "regular_supporters": loyalty.regular_supporters,
            "average_lifetime_value": loyalty.average_lifetime_value,
            "top_loyal_actors": [
                {
                    **actor_to_payload(entry.actor),
                    "record_count": entry.record_count,
                    "total_amount": entry.total_amount,
                    "first_seen": entry.first_seen,
                    "last_seen": entry.last_seen,
                    "days_between_first_and_last": entry.days_between_first_and_last,
                    "average_days_between": entry.average_days_between,
                    "category": entry.category,
                }
                for entry in loyalty.top_loyal_actors
            ],
        },
        "content_performance": [
            {
                **content_to_payload(item.content),
                "total_amount": item.total_amount,
                "record_count": item.record_count,
                "time_to_first_engagement": item.time_to_first_engagement,
                "longevity_days": item.longevity_days,
                "virality_score": item.virality_score,
                "peak_window_hours": item.peak_window_hours,
                "average_amount": item.average_amount,
            }
            for item in snapshot.content_performance
        ],
        "tag_performance": [asdict(item) for item in snapshot.tag_performance],
        "loading_state": loading_state_to_payload(snapshot.loading_state),
        "enrichment": {
            "unresolved_content_count": len(snapshot.unresolved_content_ids),
            "unresolved_actor_count": len(snapshot.unresolved_actor_ids),
        },
    }
    if include_records:
        payload["records"] = [record_to_payload(record) for record in snapshot.records]
    return payload


def write_snapshot_json(
    output_path: Path, snapshot: AnalyticSnapshot, include_records: bool = False
) -> None:
    """Write a snapshot payload to a JSON file."""
    payload = snapshot_to_payload(snapshot, include_records=include_records)
    output_path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def window_to_payload(window: Window) -> dict[str, object]:
    return {"since": window.since, "until": window.until, "label": window.label}


def actor_to_payload(actor: ActorProfile) -> dict[str, object]:
    return {
        "actor_id": actor.actor_id,
        "name": actor.name,
        "verified_handle": actor.verified_handle,
        "avatar": actor.avatar,
    }


def content_to_payload(content: ContentRef) -> dict[str, object]:
    return {
        "content_id": content.content_id,
        "kind": content.kind,
        "author": content.author,
        "body": content.body,
        "created_at": content.created_at,
    }


def loading_state_to_payload(state: LoadingState) -> dict[str, object]:
    return {
        "phase": state.phase.value,
        "batches_fetched": state.batches_fetched,
        "detected_limit": state.detected_limit,
        "consecutive_failures": state.consecutive_failures,
        "auto_load_enabled": state.auto_load_enabled,
        "records_in_window": state.records_in_window,
        "last_error": state.last_error,
        "is_complete": state.is_complete,
        "can_load_more": state.can_load_more,
    }


def record_to_payload(record: ParsedRecord) -> dict[str, object]:
    """Serialize one joined record."""
    return {
        "receipt_id": record.receipt.receipt_id,
        "created_at": record.created_at,
        "amount": record.amount,
        "actor": actor_to_payload(record.actor),
        "content": content_to_payload(record.target_content) if record.target_content else None,
        "comment": record.comment,
    }
