"""Core constants used across Zaplytics modules.

This module centralizes protocol identifiers and tunable defaults.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

RECEIPT_EVENT_KIND = 9735
PROFILE_EVENT_KIND = 0
DEFAULT_CONTENT_KIND = 1
RECIPIENT_TAG_FILTER = "#p"

DEFAULT_INITIAL_BATCH_SIZE = 1000
DEFAULT_MIN_BATCH_SIZE = 250
DEFAULT_MAX_BATCH_SIZE = 2000
DEFAULT_BATCH_TIMEOUT_SECONDS = 15.0
DEFAULT_BATCH_DELAY_SECONDS = 0.3
DEFAULT_AUTO_LOAD_DELAY_SECONDS = 1.0
DEFAULT_MAX_BACKOFF_SECONDS = 30.0
DEFAULT_MAX_CONSECUTIVE_FAILURES = 3
DEFAULT_BOUNDARY_TOLERANCE_SECONDS = 3600
DEFAULT_SUBSTANTIAL_BATCH_RATIO = 0.9
DEFAULT_SUBSTANTIAL_BATCH_MIN_COUNT = 100

DEFAULT_CONTENT_CHUNK_SIZE = 150
DEFAULT_PROFILE_CHUNK_SIZE = 100
DEFAULT_ENRICHMENT_MAX_CONCURRENCY = 3
DEFAULT_ENRICHMENT_PAUSE_SECONDS = 0.05
DEFAULT_CONTENT_TIMEOUT_SECONDS = 12.0
DEFAULT_PROFILE_TIMEOUT_SECONDS = 15.0
DEFAULT_ENTITY_CACHE_MAX_ENTRIES = 50_000

DEFAULT_WHALE_THRESHOLD = 10_000
REGULAR_MIN_RECORDS = 5
FREQUENT_MIN_RECORDS = 3
FREQUENT_MAX_GAP_DAYS = 7.0
VIRALITY_WINDOW_SECONDS = 3600
PEAK_WINDOW_HOURS = (1, 6, 24, 72)
MIN_TAG_RECORDS = 2

TOP_CONTENT_LIMIT = 10
TOP_ACTOR_LIMIT = 10
TOP_LOYAL_ACTOR_LIMIT = 10
TOP_CONTENT_PERFORMANCE_LIMIT = 20

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86_400
HOURLY_SPAN_MAX_DAYS = 2
DAILY_SPAN_MAX_DAYS = 31
WEEKLY_SPAN_MAX_DAYS = 90

NAMED_RANGE_DAYS = {
    "24h": 1,
    "7d": 7,
    "30d": 30,
    "90d": 90,
}
CUSTOM_RANGE_NAME = "custom"
DEFAULT_RANGE_NAME = "30d"

DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

KIND_NAMES = {
    0: "Profiles",
    1: "Notes",
    3: "Contact Lists",
    4: "Encrypted DMs",
    5: "Event Deletions",
    6: "Reposts",
    7: "Reactions",
    40: "Channel Creation",
    41: "Channel Metadata",
    42: "Channel Message",
    1984: "Problem Reports",
    9734: "Zap Requests",
    9735: "Zap Receipts",
    10002: "Relay List Metadata",
    30000: "People Lists",
    30001: "Bookmarks Lists",
    30008: "Profile Badges",
    30009: "Badge Definitions",
    30017: "Create/Update Stall",
    30018: "Create/Update Product",
    30023: "Long-form Articles",
    30024: "Draft Long-form Articles",
    30311: "Live Events",
    30315: "User Statuses",
    30402: "Classified Listings",
    31922: "Date-Based Calendar Event",
    31923: "Time-Based Calendar Event",
    31989: "Handler Recommendation",
    31990: "Handler Information",
    34550: "Community Definition",
}
