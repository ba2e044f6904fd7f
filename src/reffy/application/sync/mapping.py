"""
Mapping Store - Persisted association between artifacts and remote issues.

The mapping is a single JSON file:

    {"artifacts": {"<artifact-id>": {"issue_id": "...", ...}, ...}}

It is read fully at the start of a run, mutated in memory and replaced as a
whole at the end. Concurrent runs against the same file race on that final
write (last writer wins).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from reffy.core.domain.entities import MappingEntry
from reffy.core.exceptions import ArtifactStoreError


logger = logging.getLogger("MappingStore")

MAPPING_RELATIVE_PATH = Path(".references") / "links" / "linear.json"


@dataclass
class MappingFile:
    """In-memory view of the mapping file."""

    artifacts: dict[str, MappingEntry] = field(default_factory=dict)

    def get(self, artifact_id: str) -> MappingEntry | None:
        return self.artifacts.get(artifact_id)

    def set(self, artifact_id: str, entry: MappingEntry) -> None:
        self.artifacts[artifact_id] = entry

    def remove(self, artifact_id: str) -> MappingEntry | None:
        return self.artifacts.pop(artifact_id, None)

    def items(self) -> Iterator[tuple[str, MappingEntry]]:
        # Snapshot so callers may add entries while iterating
        return iter(list(self.artifacts.items()))

    def issue_ids(self) -> set[str]:
        """Every remote issue id currently claimed by an entry."""
        return {entry.issue_id for entry in self.artifacts.values() if entry.issue_id}

    def __contains__(self, artifact_id: object) -> bool:
        return artifact_id in self.artifacts

    def __len__(self) -> int:
        return len(self.artifacts)

    def to_dict(self) -> dict[str, Any]:
        return {"artifacts": {aid: entry.to_dict() for aid, entry in self.artifacts.items()}}

    @classmethod
    def from_dict(cls, data: Any) -> MappingFile:
        """Parse raw JSON data. Anything unexpected yields an empty mapping."""
        if not isinstance(data, dict) or not isinstance(data.get("artifacts"), dict):
            return cls()
        artifacts = {}
        for artifact_id, raw in data["artifacts"].items():
            if isinstance(raw, dict):
                artifacts[str(artifact_id)] = MappingEntry.from_dict(raw)
        return cls(artifacts=artifacts)


class MappingStore:
    """
    Loads and saves the mapping file for one repository.

    A missing or malformed file is treated as an empty mapping, never as an
    error, so a damaged file degrades to a first-time sync.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    @classmethod
    def for_repo(cls, repo_root: Path | str) -> MappingStore:
        return cls(Path(repo_root) / MAPPING_RELATIVE_PATH)

    def load(self) -> MappingFile:
        """Read the whole mapping file."""
        try:
            text = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            logger.debug(f"No mapping file at {self.path}")
            return MappingFile()
        except OSError as e:
            logger.warning(f"Could not read mapping file {self.path}: {e}")
            return MappingFile()

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            logger.warning(f"Malformed mapping file {self.path}, starting empty: {e}")
            return MappingFile()

        mapping = MappingFile.from_dict(data)
        logger.debug(f"Loaded {len(mapping)} mapping entries from {self.path}")
        return mapping

    def save(self, mapping: MappingFile) -> None:
        """
        Replace the mapping file atomically.

        Raises:
            ArtifactStoreError: If the file cannot be written.
        """
        payload = json.dumps(mapping.to_dict(), indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise ArtifactStoreError(f"Failed to write mapping file {self.path}", cause=e) from e

        logger.debug(f"Saved {len(mapping)} mapping entries to {self.path}")
