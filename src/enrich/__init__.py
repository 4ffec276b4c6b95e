"""Record enrichment.

This module resolves content and actor references of parsed receipts
through bounded batch lookups.
"""
