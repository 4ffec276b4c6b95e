"""Unit tests for bounded-concurrency chunked lookups."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from core.errors import ZaplyticsCancelledError
from enrich.chunked_lookup import chunk_ids, run_chunked_lookup
from ingest.query_source import CancellationToken
from tests.event_factory import content_event


class _IdSource:
    """Source answering id lookups and tracking in-flight requests."""

    def __init__(self, failing_id: str | None = None) -> None:
        self.failing_id = failing_id
        self.in_flight = 0
        self.max_in_flight = 0

    async def query(
        self,
        filters: list[dict[str, Any]],
        cancel_token: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        ids = filters[0]["ids"]
        if self.failing_id in ids:
            raise RuntimeError("relay rejected filter")
        return [content_event(content_id, 10) for content_id in ids]


def _run(source: _IdSource, ids: list[str], **overrides: Any) -> Any:
    options: dict[str, Any] = {
        "chunk_size": 2,
        "max_concurrency": 3,
        "pause_seconds": 0.0,
        "timeout_seconds": 1.0,
    }
    options.update(overrides)
    return run_chunked_lookup(source, ids, lambda chunk: {"ids": chunk}, **options)


def test_chunk_ids_keeps_order_and_remainder() -> None:
    """Chunks should be consecutive with a short final chunk."""
    assert chunk_ids(["a", "b", "c", "d", "e"], 2) == [["a", "b"], ["c", "d"], ["e"]]


@pytest.mark.asyncio
async def test_failed_chunk_is_skipped() -> None:
    """A failing chunk should not discard other chunks."""
    events = await _run(_IdSource(failing_id="bad"), ["a", "b", "bad", "c", "d"])

    assert sorted(event["id"] for event in events) == ["a", "b", "d"]


@pytest.mark.asyncio
async def test_concurrency_is_bounded() -> None:
    """No more than the configured number of chunks should run at once."""
    source = _IdSource()

    await _run(source, [str(index) for index in range(10)], chunk_size=1, max_concurrency=2)

    assert source.max_in_flight == 2


@pytest.mark.asyncio
async def test_cancelled_token_aborts_lookup() -> None:
    """Cancellation should propagate instead of being skipped."""
    token = CancellationToken()
    token.cancel()

    with pytest.raises(ZaplyticsCancelledError):
        await _run(_IdSource(), ["a", "b"], cancel_token=token)


@pytest.mark.asyncio
async def test_non_list_response_is_skipped() -> None:
    """Malformed lookup responses should count as failed chunks."""

    class _BrokenSource:
        async def query(self, filters, cancel_token=None):
            return {"events": []}

    events = await run_chunked_lookup(
        _BrokenSource(),
        ["a"],
        lambda chunk: {"ids": chunk},
        chunk_size=1,
        max_concurrency=1,
        pause_seconds=0.0,
        timeout_seconds=1.0,
    )

    assert events == []
