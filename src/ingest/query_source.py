"""Event source protocol, cancellation, and timeouts.

This module defines the black-box query interface every ingestion and
enrichment call goes through, plus the cancellation token and the
timeout race shared by those calls.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Protocol, TypeVar

from core.errors import ZaplyticsCancelledError, ZaplyticsQueryError

ResultT = TypeVar("ResultT")


class CancellationToken:
    """Cooperative cancellation flag shared by one owner's calls."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()


class QuerySource(Protocol):
    """Paginated event source.

    Delivery is at-least-once; results may be truncated to an unknown
    page cap and may arrive in any order.
    """

    async def query(
        self,
        filters: list[dict[str, Any]],
        cancel_token: CancellationToken | None = None,
    ) -> list[dict[str, Any]]:
        ...


async def run_with_timeout(
    awaitable: Awaitable[ResultT],
    timeout_seconds: float,
    cancel_token: CancellationToken | None = None,
    operation: str = "query",
) -> ResultT:
    """Race one source call against its timeout and a cancellation token.

    Args:
        awaitable: Source call to run.
        timeout_seconds: Deadline for the call.
        cancel_token: Token whose cancellation aborts the call.
        operation: Name used in error messages.

    Returns:
        The call result.

    Raises:
        ZaplyticsCancelledError: If the token was cancelled first.
        ZaplyticsQueryError: If the call timed out or raised.
    """
    if cancel_token is not None and cancel_token.is_cancelled:
        _close_awaitable(awaitable)
        raise ZaplyticsCancelledError(f"{operation} was cancelled before it started.")
    call_task = asyncio.ensure_future(awaitable)
    waiters: set[asyncio.Future[Any]] = {call_task}
    cancel_task: asyncio.Task[None] | None = None
    if cancel_token is not None:
        cancel_task = asyncio.ensure_future(cancel_token.wait())
        waiters.add(cancel_task)
    try:
        done, _ = await asyncio.wait(
            waiters, timeout=timeout_seconds, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        call_task.cancel()
        raise
    finally:
        if cancel_task is not None:
            cancel_task.cancel()
    if cancel_token is not None and cancel_token.is_cancelled:
        _discard(call_task)
        raise ZaplyticsCancelledError(f"{operation} was cancelled.")
    if call_task not in done:
        call_task.cancel()
        raise ZaplyticsQueryError(
            f"{operation} timed out after {timeout_seconds:g}s. "
            "Retry, or raise the timeout in config."
        )
    try:
        return call_task.result()
    except ZaplyticsCancelledError:
        raise
    except Exception as error:
        raise ZaplyticsQueryError(f"{operation} failed: {error}") from error


def _close_awaitable(awaitable: Awaitable[Any]) -> None:
    close = getattr(awaitable, "close", None)
    if callable(close):
        close()


def _discard(task: asyncio.Future[Any]) -> None:
    if not task.done():
        task.cancel()
    elif not task.cancelled():
        task.exception()
