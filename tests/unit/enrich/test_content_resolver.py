"""Unit tests for referenced content resolution."""

from __future__ import annotations

import pytest

from core.types import ContentRef
from enrich.content_resolver import content_from_event, resolve_contents
from ingest.event_file_source import JsonlEventSource
from store.entity_cache import EntityCache
from tests.event_factory import ScriptedSource, content_event, fast_config


@pytest.mark.asyncio
async def test_resolve_contents_reports_unresolved_ids() -> None:
    """Ids the source does not return should stay unresolved."""
    source = JsonlEventSource([content_event("note-1", 10, body="hello")])
    cache: EntityCache[ContentRef] = EntityCache(100)

    resolved, unresolved = await resolve_contents(
        source, ["note-1", "missing", "note-1"], cache, fast_config()
    )

    assert (resolved["note-1"].body, unresolved) == ("hello", ("missing",))


@pytest.mark.asyncio
async def test_resolve_contents_reuses_cache() -> None:
    """A second pass over cached ids should not query the source."""
    source = JsonlEventSource([content_event("note-1", 10)])
    cache: EntityCache[ContentRef] = EntityCache(100)
    await resolve_contents(source, ["note-1"], cache, fast_config())

    await resolve_contents(source, ["note-1"], cache, fast_config())

    assert len(source.queries) == 1


@pytest.mark.asyncio
async def test_resolve_contents_chunks_requests() -> None:
    """Lookups should be split by the configured chunk size."""
    source = JsonlEventSource([content_event(f"note-{index}", 10) for index in range(5)])
    cache: EntityCache[ContentRef] = EntityCache(100)

    await resolve_contents(
        source,
        [f"note-{index}" for index in range(5)],
        cache,
        fast_config(content_chunk_size=2),
    )

    assert len(source.queries) == 3


def test_content_from_event_keeps_kind_and_author() -> None:
    """Resolved content should carry the event's kind and author."""
    content = content_from_event(content_event("article", 50, author="bob", kind=30023))

    assert (content.kind, content.author, content.is_resolved) == (30023, "bob", True)


def test_content_from_event_rejects_missing_timestamp() -> None:
    """Events without a timestamp cannot be resolved content."""
    event = content_event("note-1", 10)
    del event["created_at"]

    assert content_from_event(event) is None


@pytest.mark.asyncio
async def test_resolve_contents_skips_non_mapping_events() -> None:
    """Non-object entries in a lookup response should be ignored."""
    source = ScriptedSource([["garbage", 7, None, content_event("note-1", 10, body="hi")]])
    cache: EntityCache[ContentRef] = EntityCache(100)

    resolved, unresolved = await resolve_contents(source, ["note-1"], cache, fast_config())

    assert (resolved["note-1"].body, unresolved) == ("hi", ())
