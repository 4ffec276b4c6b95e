"""Referenced content resolution.

This module resolves content ids referenced by receipts into typed
content references, consulting the session cache before the source.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from core.config import ZaplyticsConfig
from core.logging_config import get_logger
from core.types import ContentRef
from enrich.chunked_lookup import run_chunked_lookup
from ingest.query_source import CancellationToken, QuerySource
from store.entity_cache import EntityCache

_LOGGER = get_logger(__name__)


async def resolve_contents(
    source: QuerySource,
    content_ids: Iterable[str],
    cache: EntityCache[ContentRef],
    config: ZaplyticsConfig,
    cancel_token: CancellationToken | None = None,
) -> tuple[dict[str, ContentRef], tuple[str, ...]]:
    """Resolve content ids into content references.

    Args:
        source: Event source for id lookups.
        content_ids: Referenced content ids, duplicates allowed.
        cache: Session cache of resolved content.
        config: Chunking, concurrency, and timeout settings.
        cancel_token: Token that aborts the pass.

    Returns:
        Resolved content by id and the ids that stayed unresolved.
    """
    resolved, missing = cache.split(content_ids)
    _LOGGER.debug("content_cache_checked", cached=len(resolved), missing=len(missing))
    if not missing:
        return resolved, ()
    events = await run_chunked_lookup(
        source,
        missing,
        lambda chunk: {"ids": chunk},
        chunk_size=config.content_chunk_size,
        max_concurrency=config.enrichment_max_concurrency,
        pause_seconds=config.enrichment_pause_seconds,
        timeout_seconds=config.content_timeout_seconds,
        cancel_token=cancel_token,
        lookup_name="content_lookup",
    )
    wanted = set(missing)
    fetched: dict[str, ContentRef] = {}
    for event in events:
        if not isinstance(event, Mapping):
            continue
        content = content_from_event(event)
        if content is not None and content.content_id in wanted:
            fetched[content.content_id] = content
    cache.put_many(fetched)
    resolved.update(fetched)
    unresolved = tuple(content_id for content_id in missing if content_id not in fetched)
    return resolved, unresolved


def content_from_event(event: Mapping[str, Any]) -> ContentRef | None:
    """Build a content reference from a raw event, or None when malformed."""
    content_id = event.get("id")
    kind = event.get("kind")
    created_at = event.get("created_at")
    if not isinstance(content_id, str) or not content_id:
        return None
    if isinstance(kind, bool) or not isinstance(kind, int):
        return None
    if isinstance(created_at, bool) or not isinstance(created_at, int):
        return None
    return ContentRef(
        content_id=content_id,
        kind=kind,
        author=str(event.get("pubkey", "")),
        body=str(event.get("content", "")),
        created_at=created_at,
    )
