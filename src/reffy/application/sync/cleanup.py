"""
Conflict Cleanup - Archive remote issues that belong to conflict copies.

Conflict copies are never pushed, but older versions of the sync (or a
manual mapping edit) can leave them associated with an issue, which then
shows up as a duplicate in Linear. This is the only operation that removes
mapping entries.
"""

from __future__ import annotations

import logging

from reffy.core.exceptions import ArtifactStoreError
from reffy.core.ports.artifact_source import ArtifactSourcePort
from reffy.core.ports.remote_gateway import RemoteGatewayPort

from .mapping import MappingFile, MappingStore
from .results import CleanupCandidate, CleanupResult


class ConflictCleaner:
    """
    Finds mapped conflict artifacts and archives their issues.

    Runs as a dry run unless `apply=True` is passed.
    """

    def __init__(
        self,
        gateway: RemoteGatewayPort,
        artifacts: ArtifactSourcePort,
        mapping_store: MappingStore,
    ):
        self.gateway = gateway
        self.artifacts = artifacts
        self.mapping_store = mapping_store
        self.logger = logging.getLogger("ConflictCleaner")

    def find_candidates(self, mapping: MappingFile) -> list[CleanupCandidate]:
        candidates = []
        for artifact in self.artifacts.list_artifacts():
            if not artifact.is_conflict:
                continue
            entry = mapping.get(artifact.id)
            if entry is None or not entry.issue_id:
                continue
            candidates.append(
                CleanupCandidate(
                    artifact_id=artifact.id,
                    filename=artifact.filename,
                    issue_id=entry.issue_id,
                    issue_identifier=entry.issue_identifier,
                )
            )
        return candidates

    def run(self, apply: bool = False) -> CleanupResult:
        """
        Archive issues mapped to conflict artifacts.

        Args:
            apply: Archive and unmap; otherwise only report candidates

        Returns:
            CleanupResult listing candidates and archive outcomes
        """
        result = CleanupResult(dry_run=not apply)
        mapping = self.mapping_store.load()
        result.candidates = self.find_candidates(mapping)

        if not apply or not result.candidates:
            return result

        for candidate in result.candidates:
            error: object = None
            try:
                if not self.gateway.archive_issue(candidate.issue_id):
                    error = "issue_archive_failed"
            except Exception as e:
                error = e
            if error is not None:
                self.logger.warning(f"Archiving {candidate.issue_id} failed: {error}")
                result.failed += 1
                result.add_failed_operation(
                    "archive", f"{candidate.artifact_id} ({candidate.issue_id})", error
                )
                continue
            mapping.remove(candidate.artifact_id)
            result.archived += 1
            self.logger.info(f"Archived {candidate.issue_identifier or candidate.issue_id}")

        try:
            self.mapping_store.save(mapping)
        except ArtifactStoreError as e:
            result.fail(str(e))
        return result
