"""Public SDK surface for Zaplytics.

This module provides a stable import path for library users.
It re-exports the session, sources, config, and typed models.
"""

from __future__ import annotations

from analytics.snapshot_builder import build_snapshot
from analytics.snapshot_payload import snapshot_to_payload, write_snapshot_json
from core.config import ZaplyticsConfig, load_config_file
from core.errors import ZaplyticsError
from core.time_ranges import resolve_window, supported_range_names
from core.types import (
    ActorProfile,
    AnalyticSnapshot,
    BatchOutcome,
    ContentRef,
    FetchPhase,
    LoadingState,
    ParsedRecord,
    Receipt,
    Window,
)
from ingest.event_file_source import JsonlEventSource
from ingest.query_source import CancellationToken, QuerySource
from service.analytics_session import AnalyticsSession, analyze_source
from store.record_store import RawRecordStore

__all__ = [
    "ActorProfile",
    "AnalyticSnapshot",
    "AnalyticsSession",
    "BatchOutcome",
    "CancellationToken",
    "ContentRef",
    "FetchPhase",
    "JsonlEventSource",
    "LoadingState",
    "ParsedRecord",
    "QuerySource",
    "RawRecordStore",
    "Receipt",
    "Window",
    "ZaplyticsConfig",
    "ZaplyticsError",
    "analyze_source",
    "build_snapshot",
    "load_config_file",
    "resolve_window",
    "snapshot_to_payload",
    "supported_range_names",
    "write_snapshot_json",
]
