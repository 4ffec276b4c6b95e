"""Offline replay source over JSONL event dumps.

This module serves raw events from a local JSONL file through the
query interface, optionally truncating pages to simulate a relay cap.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from core.errors import ZaplyticsIngestError
from core.logging_config import get_logger
from ingest.query_source import CancellationToken

_LOGGER = get_logger(__name__)


class JsonlEventSource:
    """Query source backed by events held in memory.

    Attributes:
        events: Raw events available to queries.
        page_limit: Silent cap applied to every page, if set.
        queries: Filters of every query received, in order.
    """

    def __init__(
        self,
        events: Sequence[Mapping[str, Any]],
        page_limit: int | None = None,
    ) -> None:
        if page_limit is not None and page_limit < 1:
            raise ZaplyticsIngestError(
                f"Invalid page limit {page_limit}. Use a positive page limit or omit it."
            )
        self.events: tuple[Mapping[str, Any], ...] = tuple(events)
        self.page_limit = page_limit
        self.queries: list[list[dict[str, Any]]] = []

    @classmethod
    def from_path(cls, events_path: str, page_limit: int | None = None) -> "JsonlEventSource":
        """Load events from a JSONL file.

        Args:
            events_path: Path to a file with one event object per line.
            page_limit: Optional simulated page cap.

        Returns:
            Source over the file's events.

        Raises:
            ZaplyticsIngestError: If the file is missing or has invalid lines.
        """
        return cls(read_event_lines(Path(events_path).expanduser()), page_limit=page_limit)

    async def query(
        self,
        filters: list[dict[str, Any]],
        cancel_token: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        """Return events matching any filter, newest first.

        Args:
            filters: Filters in relay wire shape.
            cancel_token: Unused; replay completes immediately.

        Returns:
            Matching events, deduplicated and truncated per page cap.
        """
        self.queries.append([dict(query_filter) for query_filter in filters])
        matched: dict[str, dict[str, Any]] = {}
        for query_filter in filters:
            for event in _matching_events(self.events, query_filter, self.page_limit):
                matched.setdefault(str(event.get("id")), dict(event))
        return list(matched.values())


def read_event_lines(file_path: Path) -> list[dict[str, Any]]:
    """Read raw event objects from a JSONL file.

    Args:
        file_path: Path to JSONL file.

    Returns:
        Parsed event objects in file order.

    Raises:
        ZaplyticsIngestError: If the file is missing or a line is invalid.
    """
    if not file_path.is_file():
        raise ZaplyticsIngestError(
            f"Failed to read events at {file_path}: file does not exist. "
            "Provide an existing JSONL file."
        )
    events: list[dict[str, Any]] = []
    for line_number, line in enumerate(file_path.read_text(encoding="utf-8").splitlines(), 1):
        if not line.strip():
            continue
        events.append(_parse_event_line(file_path, line, line_number))
    _LOGGER.info("events_loaded", path=str(file_path), event_count=len(events))
    return events


def _parse_event_line(file_path: Path, line: str, line_number: int) -> dict[str, Any]:
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ZaplyticsIngestError(
            f"Failed to parse JSONL event at {file_path}:{line_number}: "
            f"{error.msg}. Fix the JSON syntax and retry."
        ) from error
    if not isinstance(payload, dict):
        raise ZaplyticsIngestError(
            f"Invalid JSONL event at {file_path}:{line_number}: "
            "expected a JSON object per line."
        )
    return payload


def _matching_events(
    events: Iterable[Mapping[str, Any]],
    query_filter: Mapping[str, Any],
    page_limit: int | None,
) -> list[Mapping[str, Any]]:
    matches = [event for event in events if _matches(event, query_filter)]
    matches.sort(key=_created_at, reverse=True)
    limits = [value for value in (query_filter.get("limit"), page_limit) if value is not None]
    if limits:
        return matches[: min(limits)]
    return matches


def _matches(event: Mapping[str, Any], query_filter: Mapping[str, Any]) -> bool:
    if "ids" in query_filter and event.get("id") not in query_filter["ids"]:
        return False
    if "kinds" in query_filter and event.get("kind") not in query_filter["kinds"]:
        return False
    if "authors" in query_filter and event.get("pubkey") not in query_filter["authors"]:
        return False
    created_at = _created_at(event)
    if "since" in query_filter and created_at < query_filter["since"]:
        return False
    if "until" in query_filter and created_at > query_filter["until"]:
        return False
    for key, wanted in query_filter.items():
        if key.startswith("#") and not _has_tag_value(event, key[1:], wanted):
            return False
    return True


def _has_tag_value(event: Mapping[str, Any], tag_name: str, wanted: Iterable[str]) -> bool:
    wanted_values = set(wanted)
    for tag in event.get("tags") or ():
        if isinstance(tag, (list, tuple)) and len(tag) >= 2 and tag[0] == tag_name:
            if tag[1] in wanted_values:
                return True
    return False


def _created_at(event: Mapping[str, Any]) -> int:
    created_at = event.get("created_at")
    if isinstance(created_at, int) and not isinstance(created_at, bool):
        return created_at
    return 0
