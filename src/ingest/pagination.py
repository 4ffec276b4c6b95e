"""Progressive receipt pagination controller.

This module walks a user's receipts backwards in time one page at a
time, detects the source's silent page cap, and decides when the
active window is completely loaded. All loading state changes go
through a single validated transition.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Mapping, Sequence

from core.config import ZaplyticsConfig
from core.constants import RECEIPT_EVENT_KIND
from core.errors import ZaplyticsCancelledError, ZaplyticsQueryError, ZaplyticsStateError
from core.logging_config import get_logger
from core.types import BatchOutcome, FetchPhase, LoadingState, QueryFilter, Window
from ingest.query_source import CancellationToken, QuerySource, run_with_timeout
from ingest.receipt_parser import validate_events
from store.record_store import RawRecordStore

_LOGGER = get_logger(__name__)

StateListener = Callable[[LoadingState], None]

_TRANSITIONS: dict[FetchPhase, frozenset[FetchPhase]] = {
    FetchPhase.IDLE: frozenset({FetchPhase.FETCHING, FetchPhase.COMPLETE}),
    FetchPhase.FETCHING: frozenset({FetchPhase.IDLE, FetchPhase.COMPLETE, FetchPhase.ERROR}),
    FetchPhase.COMPLETE: frozenset({FetchPhase.IDLE}),
    FetchPhase.ERROR: frozenset({FetchPhase.FETCHING, FetchPhase.IDLE, FetchPhase.COMPLETE}),
}


class PaginationController:
    """Single-flight pagination state machine for one user.

    The controller is the only writer of the user's receipts in the
    shared store. Progress (detected limit, batch count, exhausted
    boundaries) survives window changes and is dropped with the
    controller on user change.
    """

    def __init__(
        self,
        user_id: str,
        store: RawRecordStore,
        source: QuerySource,
        config: ZaplyticsConfig,
    ) -> None:
        self.user_id = user_id
        self._store = store
        self._source = source
        self._config = config
        self._state = LoadingState()
        self._window: Window | None = None
        self._listeners: list[StateListener] = []
        self._cancel_token = CancellationToken()
        self._raw_floor: int | None = None
        self._exhausted_since: int | None = None
        self._completed_windows: set[tuple[int, int]] = set()

    @property
    def state(self) -> LoadingState:
        return self._state

    @property
    def window(self) -> Window | None:
        return self._window

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def activate_window(self, window: Window) -> bool:
        """Make a window active without clearing pagination progress.

        Args:
            window: Newly selected window.

        Returns:
            Whether cached data already covers the window.
        """
        self._window = window
        covered = self.is_covered(window)
        records_in_window = len(self._store.filter_for_window(self.user_id, window))
        phase = self._state.phase
        if phase is not FetchPhase.FETCHING:
            if covered:
                phase = FetchPhase.COMPLETE
            elif phase is FetchPhase.COMPLETE:
                phase = FetchPhase.IDLE
        self._transition(phase, records_in_window=records_in_window)
        _LOGGER.debug(
            "window_activated",
            user_id=self.user_id,
            since=window.since,
            until=window.until,
            covered=covered,
        )
        return covered

    def is_covered(self, window: Window) -> bool:
        """Return whether every receipt of a window is already cached.

        A window is covered when pagination reached its start within
        the boundary tolerance, when the source was exhausted at or
        below its start, or when the custom window was completed before.
        """
        if self._exhausted_since is not None and self._exhausted_since <= window.since:
            return True
        if window.until is not None and (window.since, window.until) in self._completed_windows:
            return True
        floor = self._cursor_floor()
        return floor is not None and floor <= window.since + self._config.boundary_tolerance_seconds

    def needs_widening(self, window: Window) -> bool:
        """Return whether cached data exists but stops short of the window start."""
        return self._store.count(self.user_id) > 0 and not self.is_covered(window)

    def set_auto_load(self, enabled: bool) -> None:
        self._transition(self._state.phase, auto_load_enabled=enabled)

    def reset_failures(self) -> None:
        """Clear the failure counter and re-enable automatic loading."""
        self._transition(self._state.phase, consecutive_failures=0, auto_load_enabled=True)

    def can_auto_fetch(self) -> bool:
        """Return whether an automatic batch may start for the active window."""
        return (
            self._window is not None
            and self._state.can_load_more
            and self._state.auto_load_enabled
            and self._state.consecutive_failures < self._config.max_consecutive_failures
        )

    def cancel(self) -> None:
        """Abort the in-flight query; later fetches use a fresh token."""
        self._cancel_token.cancel()
        self._cancel_token = CancellationToken()

    async def fetch_next_batch(
        self,
        window: Window | None = None,
        is_automatic: bool = False,
    ) -> BatchOutcome | None:
        """Fetch the next older page of receipts for a window.

        Args:
            window: Window to load, the active window by default.
            is_automatic: Whether the call comes from the auto-load scheduler.

        Returns:
            Batch outcome, or None when the call was skipped or cancelled.

        Raises:
            ZaplyticsStateError: If no window was ever activated.
        """
        target = window or self._window
        if target is None:
            raise ZaplyticsStateError(
                f"No active window for user {self.user_id}. Activate a window before fetching."
            )
        if target != self._window:
            self.activate_window(target)
        if self._state.is_fetching or self._state.is_complete:
            return None
        if is_automatic and not self.can_auto_fetch():
            return None
        limit = self._batch_size(is_automatic)
        query_filter = QueryFilter(
            kinds=(RECEIPT_EVENT_KIND,),
            target_tag=self.user_id,
            limit=limit,
            since=target.since,
            until=self._cursor_until(target),
        )
        token = self._cancel_token
        self._transition(FetchPhase.FETCHING)
        _LOGGER.debug("batch_requested", user_id=self.user_id, **query_filter.to_payload())
        try:
            events = await run_with_timeout(
                self._source.query([query_filter.to_payload()], token),
                self._config.batch_timeout_seconds,
                token,
                operation="Receipt query",
            )
        except ZaplyticsCancelledError:
            _LOGGER.info("batch_cancelled", user_id=self.user_id)
            self._transition(FetchPhase.IDLE)
            return None
        except ZaplyticsQueryError as error:
            return self._record_failure(limit, str(error))
        return self._record_success(target, limit, events)

    def _record_success(
        self,
        target: Window,
        requested: int,
        events: Sequence[Mapping[str, Any]],
    ) -> BatchOutcome:
        receipts = validate_events(events)
        self._observe_raw_floor(events)
        added = self._store.merge(self.user_id, receipts)
        detected_limit = self._state.detected_limit
        if detected_limit is None and 0 < len(events) < requested:
            detected_limit = max(len(events), self._config.min_batch_size)
            _LOGGER.info("limit_detected", user_id=self.user_id, detected_limit=detected_limit)
        if not events:
            self._mark_exhausted(target)
        completed = self.is_covered(target)
        active = self._window or target
        phase = FetchPhase.COMPLETE if self.is_covered(active) else FetchPhase.IDLE
        self._transition(
            phase,
            batches_fetched=self._state.batches_fetched + 1,
            detected_limit=detected_limit,
            consecutive_failures=0,
            records_in_window=len(self._store.filter_for_window(self.user_id, active)),
            last_error=None,
        )
        oldest_timestamp = receipts[-1].created_at if receipts else None
        _LOGGER.info(
            "batch_fetched",
            user_id=self.user_id,
            requested=requested,
            received=len(events),
            accepted=len(receipts),
            added=added,
            oldest_timestamp=oldest_timestamp,
            completed=completed,
        )
        return BatchOutcome(
            requested=requested,
            received=len(events),
            accepted=len(receipts),
            added=added,
            oldest_timestamp=oldest_timestamp,
            completed=completed,
        )

    def _record_failure(self, requested: int, message: str) -> BatchOutcome:
        failures = self._state.consecutive_failures + 1
        auto_load_enabled = self._state.auto_load_enabled
        if failures >= self._config.max_consecutive_failures:
            auto_load_enabled = False
        self._transition(
            FetchPhase.ERROR,
            consecutive_failures=failures,
            auto_load_enabled=auto_load_enabled,
            last_error=message,
        )
        _LOGGER.warning(
            "batch_failed",
            user_id=self.user_id,
            consecutive_failures=failures,
            auto_load_enabled=auto_load_enabled,
            error=message,
        )
        return BatchOutcome(requested=requested, error=message)

    def _mark_exhausted(self, target: Window) -> None:
        if target.until is not None:
            self._completed_windows.add((target.since, target.until))
            return
        if self._exhausted_since is None or target.since < self._exhausted_since:
            self._exhausted_since = target.since

    def _observe_raw_floor(self, events: Sequence[Mapping[str, Any]]) -> None:
        timestamps = [
            event["created_at"]
            for event in events
            if isinstance(event, Mapping)
            and isinstance(event.get("created_at"), int)
            and not isinstance(event.get("created_at"), bool)
        ]
        if not timestamps:
            return
        oldest = min(timestamps)
        if self._raw_floor is None or oldest < self._raw_floor:
            self._raw_floor = oldest

    def _cursor_floor(self) -> int | None:
        candidates = [
            value
            for value in (self._store.oldest_timestamp(self.user_id), self._raw_floor)
            if value is not None
        ]
        return min(candidates) if candidates else None

    def _cursor_until(self, window: Window) -> int | None:
        floor = self._cursor_floor()
        if floor is None:
            return window.until
        until = floor - 1
        if window.until is not None:
            until = min(until, window.until)
        return until

    def _batch_size(self, is_automatic: bool) -> int:
        detected_limit = self._state.detected_limit
        if is_automatic and self._state.batches_fetched > 0:
            size = detected_limit or self._config.min_batch_size
        else:
            size = detected_limit or self._config.initial_batch_size
        return min(size, self._config.max_batch_size)

    def _transition(self, phase: FetchPhase, **changes: Any) -> None:
        """Apply a validated phase change and notify listeners.

        Raises:
            ZaplyticsStateError: If the phase change is not allowed.
        """
        current = self._state.phase
        if phase is not current and phase not in _TRANSITIONS[current]:
            raise ZaplyticsStateError(
                f"Invalid loading transition {current.value} -> {phase.value} "
                f"for user {self.user_id}."
            )
        self._state = replace(self._state, phase=phase, **changes)
        for listener in list(self._listeners):
            listener(self._state)
