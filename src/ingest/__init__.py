"""Progressive receipt ingestion.

This module validates receipt events from a paginated source and
accumulates them per user in the session's record store.
"""
