"""Automatic pagination scheduling.

This module chains automatic batches while results stay substantial,
backs off after failures, and re-targets work when the active window
changes. Timers and the in-flight fetch are explicit task handles.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

from core.config import ZaplyticsConfig
from core.logging_config import get_logger
from core.types import BatchOutcome, Window
from ingest.pagination import PaginationController

_LOGGER = get_logger(__name__)


class AutoLoadScheduler:
    """Drive a pagination controller without manual interaction.

    At most one timer task and one fetch task exist at a time. A window
    change cancels the timer but never the in-flight fetch; a fetch that
    finishes after a window change re-evaluates the active window
    instead of chaining.
    """

    def __init__(self, controller: PaginationController, config: ZaplyticsConfig) -> None:
        self._controller = controller
        self._config = config
        self._timer: asyncio.Task[None] | None = None
        self._fetch: asyncio.Task[None] | None = None
        self._generation = 0
        self.last_outcome: BatchOutcome | None = None

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def is_running(self) -> bool:
        return self._fetch is not None and not self._fetch.done()

    def on_window_activated(self, window: Window) -> None:
        """Retarget automatic loading to a newly active window.

        Args:
            window: Window the user selected.
        """
        self._generation += 1
        self._cancel_timer()
        covered = self._controller.activate_window(window)
        if covered or not self._controller.can_auto_fetch():
            return
        delay = self._config.auto_load_delay_seconds
        if self._controller.needs_widening(window):
            delay *= 2
        self._schedule(delay, reason="window_activated")

    def toggle_auto_load(self) -> bool:
        """Flip automatic loading without touching the failure counter.

        Returns:
            The new auto-load flag.
        """
        enabled = not self._controller.state.auto_load_enabled
        self._controller.set_auto_load(enabled)
        if not enabled:
            self._cancel_timer()
        elif self._controller.can_auto_fetch() and not self.has_pending_timer:
            self._schedule(self._config.auto_load_delay_seconds, reason="auto_load_enabled")
        _LOGGER.info("auto_load_toggled", user_id=self._controller.user_id, enabled=enabled)
        return enabled

    def restart_auto_load(self) -> None:
        """Clear failures, re-enable loading, and fetch immediately if useful."""
        self._controller.reset_failures()
        self._cancel_timer()
        if self.is_running or not self._controller.can_auto_fetch():
            return
        self._schedule(0.0, reason="auto_load_restarted")

    def cancel_all(self) -> None:
        """Abort any in-flight fetch, manual or automatic, and drop every timer."""
        self._generation += 1
        self._cancel_timer()
        self._controller.cancel()

    async def fetch_manual(self, window: Window) -> BatchOutcome | None:
        """Fetch one batch on explicit request.

        A window change while the batch was in flight could not schedule
        anything, so the active window is re-evaluated afterwards.

        Args:
            window: Window the batch loads.

        Returns:
            Batch outcome, or None when the fetch was skipped or cancelled.
        """
        generation = self._generation
        outcome = await self._controller.fetch_next_batch(window)
        if outcome is not None and generation != self._generation and not self.is_running:
            self._reevaluate_active_window()
        return outcome

    async def drain(self) -> None:
        """Wait until no timer or fetch task is pending."""
        while True:
            pending = [
                task for task in (self._timer, self._fetch) if task is not None and not task.done()
            ]
            if not pending:
                return
            await asyncio.wait(pending)

    def _schedule(self, delay_seconds: float, reason: str) -> None:
        self._cancel_timer()
        self._timer = self._spawn(self._fire_after(delay_seconds))
        _LOGGER.debug(
            "auto_load_scheduled",
            user_id=self._controller.user_id,
            delay_seconds=delay_seconds,
            reason=reason,
        )

    async def _fire_after(self, delay_seconds: float) -> None:
        await asyncio.sleep(delay_seconds)
        self._timer = None
        if self.is_running:
            return
        self._fetch = self._spawn(self._run_fetch(self._generation))

    async def _run_fetch(self, generation: int) -> None:
        try:
            outcome = await self._controller.fetch_next_batch(is_automatic=True)
        finally:
            if self._fetch is asyncio.current_task():
                self._fetch = None
        if outcome is None:
            return
        self.last_outcome = outcome
        if generation != self._generation:
            self._reevaluate_active_window()
            return
        self._continue_after(outcome)

    def _continue_after(self, outcome: BatchOutcome) -> None:
        state = self._controller.state
        if outcome.failed:
            if self._controller.can_auto_fetch():
                delay = min(
                    self._config.batch_delay_seconds * 2**state.consecutive_failures,
                    self._config.max_backoff_seconds,
                )
                self._schedule(delay, reason="failure_backoff")
            else:
                _LOGGER.warning(
                    "auto_load_exhausted",
                    user_id=self._controller.user_id,
                    consecutive_failures=state.consecutive_failures,
                )
            return
        if state.is_complete:
            _LOGGER.info(
                "auto_load_complete",
                user_id=self._controller.user_id,
                records_in_window=state.records_in_window,
                batches_fetched=state.batches_fetched,
            )
            return
        if self._is_substantial(outcome) and self._controller.can_auto_fetch():
            self._schedule(self._config.batch_delay_seconds, reason="substantial_batch")
            return
        _LOGGER.info(
            "auto_load_paused",
            user_id=self._controller.user_id,
            accepted=outcome.accepted,
            requested=outcome.requested,
        )

    def _reevaluate_active_window(self) -> None:
        window = self._controller.window
        if window is None:
            return
        if self._controller.activate_window(window) or not self._controller.can_auto_fetch():
            return
        self._schedule(self._config.auto_load_delay_seconds, reason="window_changed")

    def _is_substantial(self, outcome: BatchOutcome) -> bool:
        if outcome.accepted and not outcome.added:
            return False
        return (
            outcome.accepted >= self._config.substantial_batch_ratio * outcome.requested
            or outcome.accepted >= self._config.substantial_batch_min_count
        )

    def _cancel_timer(self) -> None:
        timer = self._timer
        self._timer = None
        if timer is not None and timer is not asyncio.current_task() and not timer.done():
            timer.cancel()

    def _spawn(self, coroutine: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coroutine)
        task.add_done_callback(self._log_task_failure)
        return task

    def _log_task_failure(self, task: asyncio.Task[None]) -> None:
        if task.cancelled() or task.exception() is None:
            return
        _LOGGER.error(
            "auto_load_task_failed",
            user_id=self._controller.user_id,
            error=str(task.exception()),
        )
