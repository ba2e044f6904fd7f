"""
Artifact Source Port - Abstract interface for the local artifact store.

Implementations:
- ReferencesStore: `.references/` directory with a JSON manifest
"""

from abc import ABC, abstractmethod
from pathlib import Path

from reffy.core.domain.entities import Artifact, ConflictRecord, ContentSignature


class ArtifactSourcePort(ABC):
    """
    Capability interface for reading and writing local artifacts.

    Read helpers return None/empty values for missing files instead of
    raising, so a deleted file never aborts a sync run.
    """

    @abstractmethod
    def list_artifacts(self) -> list[Artifact]:
        """All artifacts in manifest order."""
        ...

    @abstractmethod
    def get_artifact(self, artifact_id: str) -> Artifact | None:
        """Look up one artifact by id."""
        ...

    @abstractmethod
    def get_artifact_path(self, artifact: Artifact) -> Path:
        """Location of the artifact's content on disk."""
        ...

    @abstractmethod
    def read_text(self, artifact: Artifact) -> str | None:
        """Content decoded as UTF-8, or None if it cannot be read."""
        ...

    @abstractmethod
    def read_bytes(self, artifact: Artifact) -> bytes:
        """Raw content. Raises ArtifactStoreError if it cannot be read."""
        ...

    @abstractmethod
    def content_signature(self, artifact: Artifact) -> ContentSignature | None:
        """Modification time and size of the content, or None if missing."""
        ...

    @abstractmethod
    def create_artifact(
        self,
        name: str,
        content: str | None = None,
        kind: str | None = None,
        mime_type: str | None = None,
        tags: list[str] | None = None,
    ) -> Artifact:
        """Create a new artifact and return it."""
        ...

    @abstractmethod
    def update_artifact(
        self,
        artifact_id: str,
        name: str | None = None,
        content: str | None = None,
        kind: str | None = None,
        mime_type: str | None = None,
        tags: list[str] | None = None,
    ) -> Artifact | None:
        """Update the given fields. Returns None if the artifact does not exist."""
        ...

    @abstractmethod
    def create_conflict_copy(self, artifact_id: str, source: str, note: str) -> Artifact | None:
        """
        Copy an artifact's current content into a new conflict artifact.

        The copy is named "<name> (conflict)" and tagged "conflict", and a
        ConflictRecord referencing both ids is appended.

        Returns:
            The new artifact, or None if the original is missing or unreadable.
        """
        ...

    @abstractmethod
    def list_conflicts(self) -> list[ConflictRecord]:
        """All conflict records, oldest first."""
        ...
