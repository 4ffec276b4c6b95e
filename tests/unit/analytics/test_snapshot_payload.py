"""Unit tests for snapshot serialization."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from analytics.snapshot_builder import build_snapshot
from analytics.snapshot_payload import snapshot_to_payload, write_snapshot_json
from core.types import ActorProfile, ContentRef, FetchPhase, LoadingState, Window
from tests.event_factory import BASE_TIME, USER, record

_NOTE = ContentRef(
    content_id="note-1", kind=1, author=USER, body="#zap it", created_at=BASE_TIME - 7200
)


def _snapshot():
    records = [
        record("r1", BASE_TIME - 3600, amount=100, actor_id="alice", content=_NOTE),
        record("r2", BASE_TIME - 1800, amount=50, actor_id="alice", content=_NOTE),
    ]
    return build_snapshot(
        USER,
        Window(since=BASE_TIME - 86_400, label="24h"),
        records,
        LoadingState(phase=FetchPhase.COMPLETE, batches_fetched=2, detected_limit=500),
        generated_at=datetime.fromtimestamp(BASE_TIME, tz=timezone.utc),
    )


def test_payload_is_json_serializable() -> None:
    """Payloads should encode without custom serializers."""
    payload = snapshot_to_payload(_snapshot(), include_records=True)

    decoded = json.loads(json.dumps(payload))

    assert (decoded["summary"], decoded["window"]["label"]) == (
        {"total_amount": 150, "record_count": 2, "unique_actors": 1},
        "24h",
    )


def test_payload_serializes_loading_state() -> None:
    """Loading state should render its phase and derived flags."""
    payload = snapshot_to_payload(_snapshot())

    assert payload["loading_state"] == {
        "phase": "complete",
        "batches_fetched": 2,
        "detected_limit": 500,
        "consecutive_failures": 0,
        "auto_load_enabled": True,
        "records_in_window": 0,
        "last_error": None,
        "is_complete": True,
        "can_load_more": False,
    }


def test_payload_omits_records_by_default() -> None:
    """Records should only be included on request."""
    payload = snapshot_to_payload(_snapshot())

    assert "records" not in payload


def test_payload_flattens_actor_profiles() -> None:
    """Actor rankings should inline profile fields."""
    payload = snapshot_to_payload(_snapshot())

    assert payload["top_actors"][0] == {
        "actor_id": "alice",
        "name": None,
        "verified_handle": None,
        "avatar": None,
        "total_amount": 150,
        "record_count": 2,
    }


def test_write_snapshot_json_round_trips_summary(tmp_path: Path) -> None:
    """Written snapshot files should hold the same payload."""
    output_path = tmp_path / "snapshot.json"

    write_snapshot_json(output_path, _snapshot())

    payload = json.loads(output_path.read_text(encoding="utf-8"))
    assert payload["tag_performance"][0]["tag"] == "#zap"
