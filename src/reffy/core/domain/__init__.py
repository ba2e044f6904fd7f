"""
Domain Layer - Core entities shared by the sync engine and its adapters.
"""

from .entities import (
    CONFLICT_SUFFIX,
    CONFLICT_TAG,
    DEFAULT_KIND,
    DEFAULT_MIME_TYPE,
    Artifact,
    ConflictRecord,
    ContentSignature,
    EntityRef,
    IssueRef,
    MappingEntry,
    RemoteIssue,
    UploadSlot,
    latest,
    parse_timestamp,
    utc_now_iso,
)


__all__ = [
    "CONFLICT_SUFFIX",
    "CONFLICT_TAG",
    "DEFAULT_KIND",
    "DEFAULT_MIME_TYPE",
    "Artifact",
    "ConflictRecord",
    "ContentSignature",
    "EntityRef",
    "IssueRef",
    "MappingEntry",
    "RemoteIssue",
    "UploadSlot",
    "latest",
    "parse_timestamp",
    "utc_now_iso",
]
