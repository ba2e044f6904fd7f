"""
Sync Module - Reconciliation between the reference store and Linear.
"""

from .cleanup import ConflictCleaner
from .engine import CONFLICT_NOTE, CONFLICT_SOURCE, SyncEngine
from .fingerprint import (
    FingerprintIndex,
    content_fingerprint,
    normalize_body,
    normalize_title,
    title_key,
)
from .labels import LabelResolver
from .mapping import MAPPING_RELATIVE_PATH, MappingFile, MappingStore
from .results import (
    STATUS_ERROR,
    STATUS_OK,
    CleanupCandidate,
    CleanupResult,
    FailedOperation,
    PullResult,
    PushResult,
    RunResult,
)


__all__ = [
    "CONFLICT_NOTE",
    "CONFLICT_SOURCE",
    "MAPPING_RELATIVE_PATH",
    "STATUS_ERROR",
    "STATUS_OK",
    "CleanupCandidate",
    "CleanupResult",
    "ConflictCleaner",
    "FailedOperation",
    "FingerprintIndex",
    "LabelResolver",
    "MappingFile",
    "MappingStore",
    "PullResult",
    "PushResult",
    "RunResult",
    "SyncEngine",
    "content_fingerprint",
    "normalize_body",
    "normalize_title",
    "title_key",
]
