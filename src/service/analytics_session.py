"""User and window session orchestration.

This module wires the record store, pagination controller, auto-load
scheduler, enrichment stage, and snapshot builder for one analytics
session. It owns user and window switching.
"""

from __future__ import annotations

import time
from datetime import datetime, timezone, tzinfo
from typing import Callable

from analytics.snapshot_builder import build_snapshot
from core.config import ZaplyticsConfig
from core.constants import DEFAULT_RANGE_NAME
from core.errors import ZaplyticsStateError
from core.logging_config import get_logger
from core.time_ranges import resolve_window
from core.types import AnalyticSnapshot, BatchOutcome, LoadingState, Window
from enrich.record_join import EnrichmentStage
from ingest.auto_loader import AutoLoadScheduler
from ingest.pagination import PaginationController, StateListener
from ingest.query_source import QuerySource
from ingest.receipt_parser import parse_receipt
from store.record_store import RawRecordStore

_LOGGER = get_logger(__name__)


class AnalyticsSession:
    """Progressive analytics for one selected user at a time.

    Switching windows keeps cached receipts and pagination progress.
    Switching users cancels in-flight work and starts a fresh loading
    state, while the store keeps receipts of every user seen.
    """

    def __init__(
        self,
        source: QuerySource,
        config: ZaplyticsConfig | None = None,
        store: RawRecordStore | None = None,
        tz: tzinfo = timezone.utc,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self._source = source
        self._config = config or ZaplyticsConfig.from_env()
        self._store = store if store is not None else RawRecordStore()
        self._tz = tz
        self._clock = clock or (lambda: int(time.time()))
        self._enrichment = EnrichmentStage(source, self._config)
        self._controller: PaginationController | None = None
        self._scheduler: AutoLoadScheduler | None = None
        self._listeners: list[StateListener] = []
        self._window: Window | None = None

    @property
    def store(self) -> RawRecordStore:
        return self._store

    @property
    def config(self) -> ZaplyticsConfig:
        return self._config

    @property
    def user_id(self) -> str | None:
        return self._controller.user_id if self._controller else None

    @property
    def window(self) -> Window | None:
        return self._window

    @property
    def loading_state(self) -> LoadingState:
        return self._require_controller().state

    @property
    def scheduler(self) -> AutoLoadScheduler:
        return self._require_scheduler()

    def on_state_change(self, listener: StateListener) -> None:
        """Register a callback for every loading state change."""
        self._listeners.append(listener)
        if self._controller is not None:
            self._controller.add_listener(listener)

    def select_user(self, user_id: str) -> None:
        """Switch the session to another user.

        Must be called from a running event loop when a window is
        already selected, since activation may schedule automatic loads.

        Args:
            user_id: Pubkey whose receipts are analyzed.
        """
        if self._controller is not None and self._controller.user_id == user_id:
            return
        if self._scheduler is not None:
            self._scheduler.cancel_all()
        if self._controller is not None:
            for listener in self._listeners:
                self._controller.remove_listener(listener)
        self._enrichment.cancel()
        self._controller = PaginationController(user_id, self._store, self._source, self._config)
        for listener in self._listeners:
            self._controller.add_listener(listener)
        self._scheduler = AutoLoadScheduler(self._controller, self._config)
        _LOGGER.info("user_selected", user_id=user_id)
        if self._window is not None:
            self._scheduler.on_window_activated(self._window)

    def select_window(self, window: Window) -> None:
        """Make a window active, keeping cached receipts and progress."""
        self._window = window
        _LOGGER.info("window_selected", since=window.since, until=window.until, label=window.label)
        if self._scheduler is not None:
            self._scheduler.on_window_activated(window)

    def select_range(
        self,
        range_name: str = DEFAULT_RANGE_NAME,
        custom_since: int | None = None,
        custom_until: int | None = None,
    ) -> Window:
        """Resolve a named or custom range and make it active.

        Returns:
            The resolved window.

        Raises:
            ZaplyticsConfigError: If the range is invalid.
        """
        window = resolve_window(range_name, self._clock(), custom_since, custom_until)
        self.select_window(window)
        return window

    async def load_more(self) -> BatchOutcome | None:
        """Fetch one batch on explicit request, regardless of auto-load."""
        return await self._require_scheduler().fetch_manual(self._require_window())

    def toggle_auto_load(self) -> bool:
        return self._require_scheduler().toggle_auto_load()

    def restart_auto_load(self) -> None:
        self._require_scheduler().restart_auto_load()

    async def drain(self) -> None:
        """Wait until automatic loading has nothing pending."""
        if self._scheduler is not None:
            await self._scheduler.drain()

    async def close(self) -> None:
        """Cancel in-flight work and wait for it to settle."""
        if self._scheduler is not None:
            self._scheduler.cancel_all()
            await self._scheduler.drain()
        self._enrichment.cancel()

    async def snapshot(self) -> AnalyticSnapshot:
        """Build a snapshot of the active window from cached receipts.

        Returns:
            Snapshot over the receipts cached so far, enriched where possible.

        Raises:
            ZaplyticsStateError: If no user or window is selected.
            ZaplyticsCancelledError: If enrichment was cancelled by a user switch.
        """
        controller = self._require_controller()
        window = self._require_window()
        receipts = self._store.filter_for_window(controller.user_id, window)
        parsed = [parse_receipt(receipt) for receipt in receipts]
        joined, enrichment = await self._enrichment.enrich(parsed)
        return build_snapshot(
            user_id=controller.user_id,
            window=window,
            records=joined,
            loading_state=controller.state,
            enrichment=enrichment,
            generated_at=datetime.fromtimestamp(self._clock(), tz=timezone.utc),
            tz=self._tz,
            whale_threshold=self._config.whale_threshold,
        )

    def _require_controller(self) -> PaginationController:
        if self._controller is None:
            raise ZaplyticsStateError("No user selected. Call select_user before loading data.")
        return self._controller

    def _require_scheduler(self) -> AutoLoadScheduler:
        if self._scheduler is None:
            raise ZaplyticsStateError("No user selected. Call select_user before loading data.")
        return self._scheduler

    def _require_window(self) -> Window:
        if self._window is None:
            raise ZaplyticsStateError(
                "No window selected. Call select_window or select_range first."
            )
        return self._window


async def analyze_source(
    source: QuerySource,
    user_id: str,
    window: Window,
    config: ZaplyticsConfig | None = None,
    tz: tzinfo = timezone.utc,
    clock: Callable[[], int] | None = None,
) -> AnalyticSnapshot:
    """Load a window to completion through auto-load and snapshot it.

    Automatic loading runs first; manual batches then continue until
    the window is complete or failures reach the configured limit.

    Args:
        source: Event source to page through.
        user_id: Pubkey whose receipts are analyzed.
        window: Window to load.
        config: Runtime configuration.
        tz: Time zone for time buckets.
        clock: Unix time provider.

    Returns:
        Snapshot of the loaded window.
    """
    session = AnalyticsSession(source, config=config, tz=tz, clock=clock)
    session.select_window(window)
    session.select_user(user_id)
    try:
        await session.drain()
        while not session.loading_state.is_complete:
            outcome = await session.load_more()
            if outcome is None or _failures_exhausted(session):
                break
            if outcome.accepted and not outcome.added:
                # source ignored the cursor and replayed known receipts
                break
        return await session.snapshot()
    finally:
        await session.close()


def _failures_exhausted(session: AnalyticsSession) -> bool:
    state = session.loading_state
    return state.consecutive_failures >= session.config.max_consecutive_failures
