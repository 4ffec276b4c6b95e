"""Enrichment stage and record joining.

This module runs the content and profile passes for a window's parsed
records and joins the resolved entities back onto them.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Mapping, Sequence

from core.config import ZaplyticsConfig
from core.logging_config import get_logger
from core.types import ActorProfile, ContentRef, EnrichmentResult, ParsedRecord
from enrich.content_resolver import resolve_contents
from enrich.profile_resolver import resolve_profiles
from ingest.query_source import CancellationToken, QuerySource
from store.entity_cache import EntityCache

_LOGGER = get_logger(__name__)


class EnrichmentStage:
    """Resolve referenced content and actor profiles for parsed records.

    Caches are shared across windows and users of one session, so
    repeated snapshots only query ids not resolved before.
    """

    def __init__(
        self,
        source: QuerySource,
        config: ZaplyticsConfig,
        content_cache: EntityCache[ContentRef] | None = None,
        profile_cache: EntityCache[ActorProfile] | None = None,
    ) -> None:
        self._source = source
        self._config = config
        if content_cache is None:
            content_cache = EntityCache(config.entity_cache_max_entries)
        if profile_cache is None:
            profile_cache = EntityCache(config.entity_cache_max_entries)
        self.content_cache = content_cache
        self.profile_cache = profile_cache
        self._cancel_token = CancellationToken()

    def cancel(self) -> None:
        """Abort the running pass; later passes use a fresh token."""
        self._cancel_token.cancel()
        self._cancel_token = CancellationToken()

    async def enrich(
        self, records: Sequence[ParsedRecord]
    ) -> tuple[tuple[ParsedRecord, ...], EnrichmentResult]:
        """Resolve entities for records and return the joined records.

        Args:
            records: Parsed records of one window.

        Returns:
            Joined records and the enrichment result with unresolved ids.

        Raises:
            ZaplyticsCancelledError: If the pass was cancelled.
        """
        token = self._cancel_token
        content_ids = [
            record.target_content.content_id
            for record in records
            if record.target_content is not None
        ]
        contents, unresolved_contents = await resolve_contents(
            self._source, content_ids, self.content_cache, self._config, token
        )
        actor_ids = [record.actor.actor_id for record in records]
        actor_ids.extend(content.author for content in contents.values())
        profiles, unresolved_actors = await resolve_profiles(
            self._source, actor_ids, self.profile_cache, self._config, token
        )
        result = EnrichmentResult(
            contents=contents,
            profiles=profiles,
            unresolved_content_ids=unresolved_contents,
            unresolved_actor_ids=unresolved_actors,
        )
        _LOGGER.info(
            "enrichment_completed",
            record_count=len(records),
            resolved_contents=len(contents),
            resolved_profiles=len(profiles),
            unresolved_contents=len(unresolved_contents),
            unresolved_actors=len(unresolved_actors),
        )
        return join_records(records, result), result


def join_records(
    records: Sequence[ParsedRecord], result: EnrichmentResult
) -> tuple[ParsedRecord, ...]:
    """Attach resolved content and profiles to records.

    Records whose references stayed unresolved keep their placeholders.
    """
    return tuple(_join_record(record, result.contents, result.profiles) for record in records)


def _join_record(
    record: ParsedRecord,
    contents: Mapping[str, ContentRef],
    profiles: Mapping[str, ActorProfile],
) -> ParsedRecord:
    target_content = record.target_content
    if target_content is not None:
        target_content = contents.get(target_content.content_id, target_content)
    actor = profiles.get(record.actor.actor_id, record.actor)
    if target_content is record.target_content and actor is record.actor:
        return record
    return replace(record, target_content=target_content, actor=actor)
