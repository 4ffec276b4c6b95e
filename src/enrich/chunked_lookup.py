"""Bounded-concurrency batch lookups.

This module splits id lists into chunks and queries them in small
concurrent groups. A failed chunk is logged and skipped so partial
results stay usable.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Sequence

from core.errors import ZaplyticsCancelledError, ZaplyticsEnrichmentError
from core.logging_config import get_logger
from ingest.query_source import CancellationToken, QuerySource, run_with_timeout

_LOGGER = get_logger(__name__)

FilterBuilder = Callable[[list[str]], dict[str, Any]]


def chunk_ids(entity_ids: Sequence[str], chunk_size: int) -> list[list[str]]:
    """Split ids into consecutive chunks of at most ``chunk_size``."""
    return [
        list(entity_ids[start : start + chunk_size])
        for start in range(0, len(entity_ids), chunk_size)
    ]


async def run_chunked_lookup(
    source: QuerySource,
    entity_ids: Sequence[str],
    build_filter: FilterBuilder,
    *,
    chunk_size: int,
    max_concurrency: int,
    pause_seconds: float,
    timeout_seconds: float,
    cancel_token: CancellationToken | None = None,
    lookup_name: str = "lookup",
) -> list[dict[str, Any]]:
    """Query ids chunk by chunk with bounded concurrency.

    Args:
        source: Event source to query.
        entity_ids: Distinct ids to resolve.
        build_filter: Builds one query filter from a chunk of ids.
        chunk_size: Ids per request.
        max_concurrency: Requests run together in one group.
        pause_seconds: Pause between groups.
        timeout_seconds: Timeout for each request.
        cancel_token: Token that aborts the whole pass.
        lookup_name: Name used in log events.

    Returns:
        Events returned by every successful chunk.

    Raises:
        ZaplyticsCancelledError: If the pass was cancelled.
    """
    chunks = chunk_ids(entity_ids, chunk_size)
    events: list[dict[str, Any]] = []
    failed_chunks = 0
    for group_start in range(0, len(chunks), max_concurrency):
        group = chunks[group_start : group_start + max_concurrency]
        results = await asyncio.gather(
            *(
                _query_chunk(
                    source, chunk, build_filter, timeout_seconds, cancel_token, lookup_name
                )
                for chunk in group
            ),
            return_exceptions=True,
        )
        for chunk_index, result in enumerate(results, group_start + 1):
            if isinstance(result, ZaplyticsCancelledError):
                raise result
            if isinstance(result, BaseException):
                failed_chunks += 1
                _LOGGER.warning(
                    f"{lookup_name}_chunk_failed",
                    chunk_index=chunk_index,
                    chunk_count=len(chunks),
                    error=str(result),
                )
                continue
            events.extend(result)
        if group_start + max_concurrency < len(chunks):
            await asyncio.sleep(pause_seconds)
    _LOGGER.debug(
        f"{lookup_name}_completed",
        id_count=len(entity_ids),
        chunk_count=len(chunks),
        failed_chunks=failed_chunks,
        event_count=len(events),
    )
    return events


async def _query_chunk(
    source: QuerySource,
    chunk: list[str],
    build_filter: FilterBuilder,
    timeout_seconds: float,
    cancel_token: CancellationToken | None,
    lookup_name: str,
) -> list[dict[str, Any]]:
    result = await run_with_timeout(
        source.query([build_filter(chunk)], cancel_token),
        timeout_seconds,
        cancel_token,
        operation=f"{lookup_name.replace('_', ' ').capitalize()} chunk",
    )
    if not isinstance(result, list):
        raise ZaplyticsEnrichmentError(
            f"{lookup_name} chunk returned {type(result).__name__}, expected a list of events."
        )
    return result
