"""Receipt analytics.

This module aggregates joined receipt records into the analytic views
that make up a snapshot.
"""
