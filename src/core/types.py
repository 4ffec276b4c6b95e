"""Shared typed models.

This module defines immutable data models used by ingest, store,
enrichment, and analytics layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Mapping

from core.constants import RECIPIENT_TAG_FILTER


@dataclass(frozen=True)
class Receipt:
    """Validated payment receipt event.

    Attributes:
        receipt_id: Event id, the receipt identity.
        created_at: Unix timestamp in seconds.
        source_author: Pubkey of the service that issued the receipt.
        amount: Decoded invoice amount in whole sats.
        raw_tags: Event tags exactly as received.
        content: Raw event content.
    """

    receipt_id: str
    created_at: int
    source_author: str
    amount: int
    raw_tags: tuple[tuple[str, ...], ...] = ()
    content: str = ""


@dataclass(frozen=True)
class ContentRef:
    """Content referenced by a receipt.

    Attributes:
        content_id: Referenced event id.
        kind: Event kind, defaults to a text note until resolved.
        author: Content author pubkey.
        body: Content text, empty until resolved.
        created_at: Content creation time, zero when unknown.
    """

    content_id: str
    kind: int
    author: str
    body: str = ""
    created_at: int = 0

    @property
    def is_resolved(self) -> bool:
        return self.created_at > 0


@dataclass(frozen=True)
class ActorProfile:
    """Profile of the actor who sent a payment.

    Attributes:
        actor_id: Actor pubkey.
        name: Optional display name.
        verified_handle: Optional NIP-05 identifier.
        avatar: Optional picture URL.
    """

    actor_id: str
    name: str | None = None
    verified_handle: str | None = None
    avatar: str | None = None


@dataclass(frozen=True)
class ParsedRecord:
    """Receipt joined with resolved amount, content, and actor."""

    receipt: Receipt
    amount: int
    actor: ActorProfile
    target_content: ContentRef | None = None
    comment: str | None = None

    @property
    def created_at(self) -> int:
        return self.receipt.created_at


@dataclass(frozen=True)
class Window:
    """Time window an analytic view is scoped to.

    Attributes:
        since: Inclusive lower bound, unix seconds.
        until: Inclusive upper bound, or None for open-ended windows.
        label: Range name the window was derived from.
    """

    since: int
    until: int | None = None
    label: str = "custom"

    def contains(self, timestamp: int) -> bool:
        """Return whether a timestamp falls inside the window."""
        if timestamp < self.since:
            return False
        return self.until is None or timestamp <= self.until

    def span_seconds(self, now: int) -> int:
        """Return window length, measuring open-ended windows up to now."""
        upper = self.until if self.until is not None else now
        return max(upper - self.since, 0)


@dataclass(frozen=True)
class QueryFilter:
    """One receipt page query against the event source."""

    kinds: tuple[int, ...]
    target_tag: str
    limit: int
    since: int | None = None
    until: int | None = None

    def to_payload(self) -> dict[str, object]:
        """Render the filter in the source's wire shape."""
        payload: dict[str, object] = {
            "kinds": list(self.kinds),
            RECIPIENT_TAG_FILTER: [self.target_tag],
            "limit": self.limit,
        }
        if self.since is not None and self.since > 0:
            payload["since"] = self.since
        if self.until is not None:
            payload["until"] = self.until
        return payload


class FetchPhase(str, Enum):
    """Pagination controller lifecycle phase."""

    IDLE = "idle"
    FETCHING = "fetching"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class LoadingState:
    """Progressive loading state for one user.

    Attributes:
        phase: Current controller phase.
        batches_fetched: Successful batches for the user session.
        detected_limit: Inferred upstream page cap, if observed.
        consecutive_failures: Failed batches since the last success.
        auto_load_enabled: Whether automatic pagination may run.
        records_in_window: Cached receipts inside the active window.
        last_error: Message of the most recent failure.
    """

    phase: FetchPhase = FetchPhase.IDLE
    batches_fetched: int = 0
    detected_limit: int | None = None
    consecutive_failures: int = 0
    auto_load_enabled: bool = True
    records_in_window: int = 0
    last_error: str | None = None

    @property
    def is_fetching(self) -> bool:
        return self.phase is FetchPhase.FETCHING

    @property
    def is_complete(self) -> bool:
        return self.phase is FetchPhase.COMPLETE

    @property
    def can_load_more(self) -> bool:
        return not self.is_complete and not self.is_fetching


@dataclass(frozen=True)
class BatchOutcome:
    """Result of one pagination batch.

    Attributes:
        requested: Limit sent with the query.
        received: Raw events returned by the source.
        accepted: Events that passed receipt validation.
        added: Receipts that were new to the store.
        oldest_timestamp: Oldest accepted receipt time, if any.
        completed: Whether the batch completed the window.
        error: Failure message when the batch failed.
    """

    requested: int
    received: int = 0
    accepted: int = 0
    added: int = 0
    oldest_timestamp: int | None = None
    completed: bool = False
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass(frozen=True)
class EnrichmentResult:
    """Resolved entities for one snapshot request."""

    contents: Mapping[str, ContentRef] = field(default_factory=dict)
    profiles: Mapping[str, ActorProfile] = field(default_factory=dict)
    unresolved_content_ids: tuple[str, ...] = ()
    unresolved_actor_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class PeriodEarnings:
    """Amount bucketed by hour, day, week, or month."""

    period: str
    start: datetime
    total_amount: int
    record_count: int


@dataclass(frozen=True)
class HourEarnings:
    """Amount bucketed by hour of day."""

    hour: int
    total_amount: int
    record_count: int
    average_amount: float


@dataclass(frozen=True)
class DayOfWeekEarnings:
    """Amount bucketed by day of week, 0 is Sunday."""

    day_of_week: int
    day_name: str
    total_amount: int
    record_count: int
    average_amount: float


@dataclass(frozen=True)
class ContentEarnings:
    """Amount aggregated per referenced content."""

    content_id: str
    kind: int
    author: str
    body: str
    created_at: int
    total_amount: int
    record_count: int


@dataclass(frozen=True)
class KindEarnings:
    """Amount aggregated per content kind."""

    kind: int
    kind_name: str
    total_amount: int
    record_count: int
    percentage: float


@dataclass(frozen=True)
class ActorRanking:
    """Amount aggregated per actor."""

    actor: ActorProfile
    total_amount: int
    record_count: int


@dataclass(frozen=True)
class ActorLoyalty:
    """Engagement pattern of one actor."""

    actor: ActorProfile
    record_count: int
    total_amount: int
    first_seen: int
    last_seen: int
    days_between_first_and_last: float
    average_days_between: float
    category: str

    @property
    def is_regular(self) -> bool:
        return self.category == "regular"


@dataclass(frozen=True)
class LoyaltyStats:
    """Loyalty segmentation summary."""

    new_actors: int
    returning_actors: int
    regular_supporters: int
    average_lifetime_value: float
    top_loyal_actors: tuple[ActorLoyalty, ...] = ()


@dataclass(frozen=True)
class ContentPerformance:
    """Engagement timing metrics for one content item."""

    content: ContentRef
    total_amount: int
    record_count: int
    time_to_first_engagement: int
    longevity_days: float
    virality_score: float
    peak_window_hours: int
    average_amount: float


@dataclass(frozen=True)
class TagPerformance:
    """Engagement aggregated per hashtag."""

    tag: str
    total_amount: int
    record_count: int
    post_count: int
    average_amount: float
    average_time_to_first_engagement: float
    success_rate: float


@dataclass(frozen=True)
class AnalyticSnapshot:
    """Immutable aggregate of all analytic views for one window."""

    user_id: str
    window: Window
    generated_at: datetime
    total_amount: int
    record_count: int
    unique_actors: int
    period_granularity: str
    earnings_by_period: tuple[PeriodEarnings, ...]
    earnings_by_hour: tuple[HourEarnings, ...]
    earnings_by_day_of_week: tuple[DayOfWeekEarnings, ...]
    top_content: tuple[ContentEarnings, ...]
    earnings_by_kind: tuple[KindEarnings, ...]
    top_actors: tuple[ActorRanking, ...]
    loyalty: LoyaltyStats
    content_performance: tuple[ContentPerformance, ...]
    tag_performance: tuple[TagPerformance, ...]
    loading_state: LoadingState
    records: tuple[ParsedRecord, ...] = ()
    unresolved_content_ids: tuple[str, ...] = ()
    unresolved_actor_ids: tuple[str, ...] = ()
