"""Analytics session services.

This module coordinates ingestion, enrichment, and aggregation behind
a single session object.
"""
