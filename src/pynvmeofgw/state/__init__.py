"""State layer.

This package holds the last-applied group snapshot and the pure diff
between snapshots. Only the coordinator mutates the cache.
"""
