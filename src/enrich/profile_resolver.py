"""Actor profile resolution.

This module resolves actor ids into typed profiles from metadata
events. The newest metadata event per actor wins.
"""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from core.config import ZaplyticsConfig
from core.constants import PROFILE_EVENT_KIND
from core.logging_config import get_logger
from core.types import ActorProfile
from enrich.chunked_lookup import run_chunked_lookup
from ingest.query_source import CancellationToken, QuerySource
from store.entity_cache import EntityCache

_LOGGER = get_logger(__name__)


async def resolve_profiles(
    source: QuerySource,
    actor_ids: Iterable[str],
    cache: EntityCache[ActorProfile],
    config: ZaplyticsConfig,
    cancel_token: CancellationToken | None = None,
) -> tuple[dict[str, ActorProfile], tuple[str, ...]]:
    """Resolve actor ids into profiles.

    Args:
        source: Event source for metadata lookups.
        actor_ids: Actor pubkeys, duplicates allowed.
        cache: Session cache of resolved profiles.
        config: Chunking, concurrency, and timeout settings.
        cancel_token: Token that aborts the pass.

    Returns:
        Resolved profiles by actor id and the ids that stayed unresolved.
    """
    resolved, missing = cache.split(actor_id for actor_id in actor_ids if actor_id)
    _LOGGER.debug("profile_cache_checked", cached=len(resolved), missing=len(missing))
    if not missing:
        return resolved, ()
    events = await run_chunked_lookup(
        source,
        missing,
        lambda chunk: {"kinds": [PROFILE_EVENT_KIND], "authors": chunk},
        chunk_size=config.profile_chunk_size,
        max_concurrency=config.enrichment_max_concurrency,
        pause_seconds=config.enrichment_pause_seconds,
        timeout_seconds=config.profile_timeout_seconds,
        cancel_token=cancel_token,
        lookup_name="profile_lookup",
    )
    fetched: dict[str, ActorProfile] = {}
    for event in _newest_per_author(events, set(missing)).values():
        profile = profile_from_event(event)
        if profile is not None:
            fetched[profile.actor_id] = profile
    cache.put_many(fetched)
    resolved.update(fetched)
    unresolved = tuple(actor_id for actor_id in missing if actor_id not in fetched)
    return resolved, unresolved


def profile_from_event(event: Mapping[str, Any]) -> ActorProfile | None:
    """Parse a metadata event into a profile.

    Args:
        event: Kind-0 event whose content is JSON metadata.

    Returns:
        Profile, or None when the metadata cannot be decoded.
    """
    actor_id = event.get("pubkey")
    if not isinstance(actor_id, str) or not actor_id:
        return None
    try:
        metadata = json.loads(str(event.get("content", "")))
    except json.JSONDecodeError:
        _LOGGER.debug("profile_metadata_undecodable", actor_id=actor_id)
        return None
    if not isinstance(metadata, dict):
        return None
    return ActorProfile(
        actor_id=actor_id,
        name=_optional_text(metadata.get("name")) or _optional_text(metadata.get("display_name")),
        verified_handle=_optional_text(metadata.get("nip05")),
        avatar=_optional_text(metadata.get("picture")),
    )


def _newest_per_author(
    events: Iterable[object], wanted: set[str]
) -> dict[str, Mapping[str, Any]]:
    newest: dict[str, Mapping[str, Any]] = {}
    for event in events:
        if not isinstance(event, Mapping):
            continue
        author = event.get("pubkey")
        created_at = event.get("created_at")
        if event.get("kind") != PROFILE_EVENT_KIND or not isinstance(author, str):
            continue
        if author not in wanted:
            continue
        if not isinstance(created_at, int):
            continue
        current = newest.get(author)
        if current is None or created_at > current["created_at"]:
            newest[author] = event
    return newest


def _optional_text(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None
