"""Unit tests for automatic pagination scheduling."""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import pytest

from core.types import FetchPhase, Window
from ingest.auto_loader import AutoLoadScheduler
from ingest.pagination import PaginationController
from store.record_store import RawRecordStore
from tests.event_factory import BASE_TIME, USER, ScriptedSource, fast_config, receipt_event

T = BASE_TIME
DAY = 86_400


def _scheduler(
    responses: Sequence[Any],
) -> tuple[AutoLoadScheduler, PaginationController, ScriptedSource]:
    source = ScriptedSource(responses)
    config = fast_config()
    controller = PaginationController(USER, RawRecordStore(), source, config)
    return AutoLoadScheduler(controller, config), controller, source


def _receipts(count: int, newest: int) -> list[dict[str, Any]]:
    return [receipt_event(f"r{newest - index * 60}", newest - index * 60) for index in range(count)]


def _gated_response(
    started: asyncio.Event,
    gate: asyncio.Event,
    events: Sequence[dict[str, Any]] = (),
) -> Any:
    async def respond(filters: list[dict[str, Any]]) -> list[dict[str, Any]]:
        started.set()
        await gate.wait()
        return list(events)

    return respond


@pytest.mark.asyncio
async def test_substantial_batches_chain_until_complete() -> None:
    """Full pages should keep loading until the source runs dry."""
    scheduler, controller, source = _scheduler(
        [_receipts(300, T), _receipts(300, T - 300 * 60), []]
    )

    scheduler.on_window_activated(Window(since=T - 365 * DAY))
    await scheduler.drain()

    state = controller.state
    assert (state.is_complete, len(source.queries), state.records_in_window) == (True, 3, 600)


@pytest.mark.asyncio
async def test_small_batch_pauses_automatic_loading() -> None:
    """Insubstantial pages should stop the chain without completing."""
    scheduler, controller, source = _scheduler([_receipts(10, T)])

    scheduler.on_window_activated(Window(since=T - 365 * DAY))
    await scheduler.drain()

    assert (len(source.queries), controller.state.phase, scheduler.has_pending_timer) == (
        1,
        FetchPhase.IDLE,
        False,
    )


@pytest.mark.asyncio
async def test_failures_back_off_until_threshold_disables_auto_load() -> None:
    """Repeated failures should retry and then stop automatic loading."""
    scheduler, controller, source = _scheduler(
        [RuntimeError("a"), RuntimeError("b"), RuntimeError("c"), RuntimeError("d")]
    )

    scheduler.on_window_activated(Window(since=T - DAY))
    await scheduler.drain()

    assert (len(source.queries), controller.state.auto_load_enabled, controller.state.phase) == (
        3,
        False,
        FetchPhase.ERROR,
    )


@pytest.mark.asyncio
async def test_restart_clears_failures_and_fetches_again() -> None:
    """Restarting should reset the counter and resume immediately."""
    scheduler, controller, _ = _scheduler([RuntimeError("a"), RuntimeError("b"), RuntimeError("c")])
    scheduler.on_window_activated(Window(since=T - DAY))
    await scheduler.drain()

    scheduler.restart_auto_load()
    await scheduler.drain()

    assert (controller.state.consecutive_failures, controller.state.is_complete) == (0, True)


@pytest.mark.asyncio
async def test_toggle_disables_scheduling() -> None:
    """Disabled auto-load should not schedule work on window activation."""
    scheduler, _, source = _scheduler([[]])

    enabled = scheduler.toggle_auto_load()
    scheduler.on_window_activated(Window(since=T - DAY))
    await scheduler.drain()

    assert (enabled, scheduler.has_pending_timer, len(source.queries)) == (False, False, 0)


@pytest.mark.asyncio
async def test_toggle_keeps_failure_counter() -> None:
    """Toggling should not clear consecutive failures."""
    scheduler, controller, _ = _scheduler([RuntimeError("a"), RuntimeError("b"), RuntimeError("c")])
    scheduler.on_window_activated(Window(since=T - DAY))
    await scheduler.drain()

    scheduler.toggle_auto_load()
    await scheduler.drain()

    assert controller.state.consecutive_failures == 3


@pytest.mark.asyncio
async def test_covered_window_schedules_nothing() -> None:
    """Windows already covered by cached data should not fetch."""
    scheduler, _, source = _scheduler([[]])
    scheduler.on_window_activated(Window(since=T - 7 * DAY))
    await scheduler.drain()

    scheduler.on_window_activated(Window(since=T - DAY))
    await scheduler.drain()

    assert (len(source.queries), scheduler.has_pending_timer) == (1, False)


@pytest.mark.asyncio
async def test_window_change_during_fetch_retargets_new_window() -> None:
    """A fetch finishing after a window change should continue for the new window."""
    started = asyncio.Event()
    gate = asyncio.Event()
    scheduler, controller, source = _scheduler([_gated_response(started, gate), []])
    scheduler.on_window_activated(Window(since=T - 7 * DAY))
    await started.wait()

    scheduler.on_window_activated(Window(since=T - 30 * DAY))
    gate.set()
    await scheduler.drain()

    assert (controller.state.is_complete, source.queries[1][0]["since"]) == (True, T - 30 * DAY)


@pytest.mark.asyncio
async def test_cancel_all_aborts_in_flight_fetch() -> None:
    """Cancelling everything should leave the controller idle without an outcome."""
    started = asyncio.Event()
    gate = asyncio.Event()
    scheduler, controller, _ = _scheduler([_gated_response(started, gate)])
    scheduler.on_window_activated(Window(since=T - DAY))
    await started.wait()

    scheduler.cancel_all()
    await scheduler.drain()

    assert (controller.state.phase, scheduler.last_outcome, scheduler.is_running) == (
        FetchPhase.IDLE,
        None,
        False,
    )


@pytest.mark.asyncio
async def test_replayed_page_stops_chain() -> None:
    """A page with no new receipts should not schedule another batch."""
    page = _receipts(300, T)
    scheduler, controller, source = _scheduler([page, page])

    scheduler.on_window_activated(Window(since=T - 365 * DAY))
    await scheduler.drain()

    assert (len(source.queries), controller.state.is_complete) == (2, False)


@pytest.mark.asyncio
async def test_window_change_during_manual_fetch_schedules_new_window() -> None:
    """A manual fetch finishing after widening should hand over to auto-load."""
    started = asyncio.Event()
    gate = asyncio.Event()
    scheduler, controller, source = _scheduler(
        [_gated_response(started, gate, _receipts(10, T - 60)), []]
    )
    manual = asyncio.create_task(scheduler.fetch_manual(Window(since=T - DAY)))
    await started.wait()

    scheduler.on_window_activated(Window(since=T - 30 * DAY))
    gate.set()
    await manual
    await scheduler.drain()

    assert (len(source.queries), controller.state.is_complete) == (2, True)


@pytest.mark.asyncio
async def test_cancel_all_aborts_manual_fetch() -> None:
    """Cancelling should also abort a fetch the scheduler did not start."""
    started = asyncio.Event()
    gate = asyncio.Event()
    scheduler, controller, _ = _scheduler([_gated_response(started, gate, _receipts(1, T))])
    manual = asyncio.create_task(scheduler.fetch_manual(Window(since=T - DAY)))
    await started.wait()

    scheduler.cancel_all()
    gate.set()
    outcome = await manual

    assert (outcome, controller.state.records_in_window) == (None, 0)
