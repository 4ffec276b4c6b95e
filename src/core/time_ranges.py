"""Named time ranges and window resolution.

This module turns range names or explicit bounds into typed windows
and picks the period granularity used for time-series grouping.
"""

from __future__ import annotations

import time

from core.constants import (
    CUSTOM_RANGE_NAME,
    DAILY_SPAN_MAX_DAYS,
    HOURLY_SPAN_MAX_DAYS,
    NAMED_RANGE_DAYS,
    SECONDS_PER_DAY,
    WEEKLY_SPAN_MAX_DAYS,
)
from core.errors import ZaplyticsConfigError
from core.types import Window


def resolve_window(
    range_name: str,
    now: int | None = None,
    custom_since: int | None = None,
    custom_until: int | None = None,
) -> Window:
    """Resolve a named or custom range into a window.

    Named ranges are open-ended windows anchored at ``now``. Custom
    ranges require both bounds.

    Args:
        range_name: One of the named ranges or ``custom``.
        now: Reference unix time, current time by default.
        custom_since: Inclusive custom lower bound.
        custom_until: Inclusive custom upper bound.

    Returns:
        Resolved window.

    Raises:
        ZaplyticsConfigError: If the range name or custom bounds are invalid.
    """
    if range_name == CUSTOM_RANGE_NAME:
        return _resolve_custom_window(custom_since, custom_until)
    days = NAMED_RANGE_DAYS.get(range_name)
    if days is None:
        supported = ", ".join([*NAMED_RANGE_DAYS, CUSTOM_RANGE_NAME])
        raise ZaplyticsConfigError(
            f"Unsupported time range '{range_name}'. Choose one of: {supported}."
        )
    reference = int(time.time()) if now is None else now
    return Window(since=reference - days * SECONDS_PER_DAY, until=None, label=range_name)


def supported_range_names() -> tuple[str, ...]:
    """Return range names for CLI/API usage."""
    return (*NAMED_RANGE_DAYS, CUSTOM_RANGE_NAME)


def select_granularity(window: Window, now: int) -> str:
    """Pick the period bucket size from the window span.

    Args:
        window: Active window.
        now: Reference time for open-ended windows.

    Returns:
        One of ``hour``, ``day``, ``week``, or ``month``.
    """
    span_days = window.span_seconds(now) / SECONDS_PER_DAY
    if span_days <= HOURLY_SPAN_MAX_DAYS:
        return "hour"
    if span_days <= DAILY_SPAN_MAX_DAYS:
        return "day"
    if span_days <= WEEKLY_SPAN_MAX_DAYS:
        return "week"
    return "month"


def _resolve_custom_window(custom_since: int | None, custom_until: int | None) -> Window:
    if custom_since is None or custom_until is None:
        raise ZaplyticsConfigError(
            "Custom time range requires both since and until. Provide both bounds."
        )
    if custom_since > custom_until:
        raise ZaplyticsConfigError(
            f"Custom time range is inverted: since {custom_since} is after until {custom_until}."
        )
    return Window(since=custom_since, until=custom_until, label=CUSTOM_RANGE_NAME)
