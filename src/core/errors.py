"""Zaplytics exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class ZaplyticsError(Exception):
    """Base exception for all Zaplytics failures."""


class ZaplyticsConfigError(ZaplyticsError):
    """Raised for invalid runtime configuration."""


class ZaplyticsIngestError(ZaplyticsError):
    """Raised for event source reading and ingest failures."""


class ZaplyticsQueryError(ZaplyticsIngestError):
    """Raised when one upstream query fails or times out."""


class ZaplyticsCancelledError(ZaplyticsIngestError):
    """Raised when an in-flight query is cancelled by its token."""


class ZaplyticsStateError(ZaplyticsError):
    """Raised for invalid loading state machine transitions."""


class ZaplyticsEnrichmentError(ZaplyticsError):
    """Raised for content and profile resolution failures."""


class ZaplyticsAnalyticsError(ZaplyticsError):
    """Raised for invalid aggregation inputs."""
