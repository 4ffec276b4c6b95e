"""Per-user raw receipt store.

This module holds the canonical, deduplicated receipt set per user.
It grows by merge only and serves immutable window projections.
"""

from __future__ import annotations

from typing import Iterable

from core.logging_config import get_logger
from core.types import Receipt, Window

_LOGGER = get_logger(__name__)


class RawRecordStore:
    """In-memory receipt store keyed by user id.

    Receipts are kept sorted newest first with unique ids. The store is
    created per session and shared by reference with the pagination
    controller, which is its only writer.
    """

    def __init__(self) -> None:
        self._records: dict[str, list[Receipt]] = {}
        self._record_ids: dict[str, set[str]] = {}

    def merge(self, user_id: str, receipts: Iterable[Receipt]) -> int:
        """Union receipts into the user's set by identity.

        Existing ids are never overwritten, so merging is idempotent and
        safe for overlapping or empty batches.

        Args:
            user_id: Owner of the receipts.
            receipts: Validated receipts to merge.

        Returns:
            Number of receipts that were new to the store.
        """
        user_records = self._records.setdefault(user_id, [])
        seen_ids = self._record_ids.setdefault(user_id, set())
        added: list[Receipt] = []
        for receipt in receipts:
            if receipt.receipt_id in seen_ids:
                continue
            seen_ids.add(receipt.receipt_id)
            added.append(receipt)
        if added:
            user_records.extend(added)
            user_records.sort(key=_sort_key)
        _LOGGER.debug(
            "records_merged",
            user_id=user_id,
            added_count=len(added),
            total_count=len(user_records),
        )
        return len(added)

    def records(self, user_id: str) -> tuple[Receipt, ...]:
        """Return all cached receipts for a user, newest first."""
        return tuple(self._records.get(user_id, ()))

    def count(self, user_id: str) -> int:
        return len(self._records.get(user_id, ()))

    def oldest_timestamp(self, user_id: str) -> int | None:
        """Return the oldest cached receipt time, if any."""
        user_records = self._records.get(user_id)
        if not user_records:
            return None
        return user_records[-1].created_at

    def filter_for_window(self, user_id: str, window: Window) -> tuple[Receipt, ...]:
        """Project cached receipts onto a window without mutating the store.

        Args:
            user_id: Owner of the receipts.
            window: Inclusive since, and inclusive until when bounded.

        Returns:
            Receipts inside the window, newest first.
        """
        return tuple(
            receipt
            for receipt in self._records.get(user_id, ())
            if window.contains(receipt.created_at)
        )

    def users(self) -> tuple[str, ...]:
        return tuple(self._records)

    def evict_user(self, user_id: str) -> None:
        """Drop all cached receipts for a user."""
        self._records.pop(user_id, None)
        self._record_ids.pop(user_id, None)

    def clear(self) -> None:
        """Drop every cached receipt."""
        self._records.clear()
        self._record_ids.clear()


def _sort_key(receipt: Receipt) -> tuple[int, str]:
    """Sort newest first, tie-broken by id for deterministic order."""
    return (-receipt.created_at, receipt.receipt_id)
