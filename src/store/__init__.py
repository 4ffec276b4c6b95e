"""Session-scoped storage.

This module holds the raw receipt store and the bounded entity caches
shared by ingestion and enrichment for one analytics session.
"""
