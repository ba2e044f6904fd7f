"""
References Adapter - File-backed artifact store.
"""

from reffy.adapters.references.store import (
    KIND_EXTENSIONS,
    MANIFEST_VERSION,
    ManifestValidation,
    ReferencesStore,
    ReindexResult,
    infer_artifact_type,
    slugify,
)


__all__ = [
    "KIND_EXTENSIONS",
    "MANIFEST_VERSION",
    "ManifestValidation",
    "ReferencesStore",
    "ReindexResult",
    "infer_artifact_type",
    "slugify",
]
