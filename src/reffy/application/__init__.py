"""
Application Layer - Use cases and orchestration.

This layer contains:
- sync/: push/pull engine, mapping store, fingerprint matching, cleanup
"""

from .sync import ConflictCleaner, PullResult, PushResult, SyncEngine


__all__ = [
    "ConflictCleaner",
    "PullResult",
    "PushResult",
    "SyncEngine",
]
