"""Analytic snapshot assembly.

This module runs every aggregation over one window's joined records
and freezes the results, the loading state, and enrichment gaps into a
single immutable snapshot.
"""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Sequence

from analytics.content_grouping import group_by_content, group_by_kind, rank_actors
from analytics.content_performance import analyze_content_performance
from analytics.loyalty_segmentation import analyze_loyalty
from analytics.period_grouping import group_by_period
from analytics.tag_performance import analyze_tag_performance
from analytics.temporal_grouping import group_by_day_of_week, group_by_hour
from core.constants import (
    DEFAULT_WHALE_THRESHOLD,
    TOP_ACTOR_LIMIT,
    TOP_CONTENT_LIMIT,
    TOP_CONTENT_PERFORMANCE_LIMIT,
    TOP_LOYAL_ACTOR_LIMIT,
)
from core.logging_config import get_logger
from core.time_ranges import select_granularity
from core.types import AnalyticSnapshot, EnrichmentResult, LoadingState, ParsedRecord, Window

_LOGGER = get_logger(__name__)


def build_snapshot(
    user_id: str,
    window: Window,
    records: Sequence[ParsedRecord],
    loading_state: LoadingState,
    enrichment: EnrichmentResult | None = None,
    generated_at: datetime | None = None,
    tz: tzinfo = timezone.utc,
    whale_threshold: int = DEFAULT_WHALE_THRESHOLD,
) -> AnalyticSnapshot:
    """Build the snapshot of every analytic view for a window.

    Args:
        user_id: User the receipts belong to.
        window: Window the records were projected onto.
        records: Joined records inside the window.
        loading_state: Loading state at computation time.
        enrichment: Enrichment result carrying unresolved ids.
        generated_at: Snapshot time, current UTC time by default.
        tz: Time zone for hour, weekday, and period buckets.
        whale_threshold: Lifetime amount that marks a whale.

    Returns:
        Immutable analytic snapshot.
    """
    generated = generated_at or datetime.now(timezone.utc)
    window_records = tuple(record for record in records if window.contains(record.created_at))
    granularity = select_granularity(window, int(generated.timestamp()))
    loyalty = analyze_loyalty(window_records, whale_threshold, TOP_LOYAL_ACTOR_LIMIT)
    snapshot = AnalyticSnapshot(
        user_id=user_id,
        window=window,
        generated_at=generated,
        total_amount=sum(record.amount for record in window_records),
        record_count=len(window_records),
        unique_actors=len({record.actor.actor_id for record in window_records}),
        period_granularity=granularity,
        earnings_by_period=group_by_period(window_records, granularity, tz),
        earnings_by_hour=group_by_hour(window_records, tz),
        earnings_by_day_of_week=group_by_day_of_week(window_records, tz),
        top_content=group_by_content(window_records)[:TOP_CONTENT_LIMIT],
        earnings_by_kind=group_by_kind(window_records),
        top_actors=rank_actors(window_records)[:TOP_ACTOR_LIMIT],
        loyalty=loyalty,
        content_performance=analyze_content_performance(window_records)[
            :TOP_CONTENT_PERFORMANCE_LIMIT
        ],
        tag_performance=analyze_tag_performance(window_records),
        loading_state=loading_state,
        records=window_records,
        unresolved_content_ids=enrichment.unresolved_content_ids if enrichment else (),
        unresolved_actor_ids=enrichment.unresolved_actor_ids if enrichment else (),
    )
    _LOGGER.info(
        "snapshot_built",
        user_id=user_id,
        record_count=snapshot.record_count,
        total_amount=snapshot.total_amount,
        granularity=granularity,
    )
    return snapshot
