"""Bounded caches for resolved enrichment entities.

This module keeps resolved content and profiles across windows and
users of one session, evicting least recently used entries.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Generic, Iterable, Mapping, TypeVar

EntityT = TypeVar("EntityT")


class EntityCache(Generic[EntityT]):
    """LRU cache of resolved entities keyed by id."""

    def __init__(self, max_entries: int) -> None:
        self._max_entries = max_entries
        self._entries: OrderedDict[str, EntityT] = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entries

    def get(self, entity_id: str) -> EntityT | None:
        entity = self._entries.get(entity_id)
        if entity is not None:
            self._entries.move_to_end(entity_id)
        return entity

    def split(self, entity_ids: Iterable[str]) -> tuple[dict[str, EntityT], list[str]]:
        """Partition ids into cached entities and ids still to resolve.

        Args:
            entity_ids: Ids to look up; duplicates are collapsed.

        Returns:
            Cached entities by id and ordered missing ids.
        """
        found: dict[str, EntityT] = {}
        missing: list[str] = []
        for entity_id in dict.fromkeys(entity_ids):
            entity = self.get(entity_id)
            if entity is None:
                missing.append(entity_id)
            else:
                found[entity_id] = entity
        return found, missing

    def put_many(self, entities: Mapping[str, EntityT]) -> None:
        """Insert entities and evict the least recently used overflow."""
        for entity_id, entity in entities.items():
            self._entries[entity_id] = entity
            self._entries.move_to_end(entity_id)
        while self._max_entries and len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def clear(self) -> None:
        self._entries.clear()
