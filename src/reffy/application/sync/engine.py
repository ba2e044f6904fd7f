"""
Sync Engine - Push local artifacts to Linear and pull Linear edits back.

Push (local -> remote):
1. Skip conflict copies
2. Update issues that already have a mapping entry
3. Otherwise reuse an equivalent unclaimed issue, or create one
4. Upload changed binaries as attachments
5. Stamp last_pushed_at

Pull (remote -> local):
1. Fetch each mapped issue
2. Preserve local edits made since the last sync as conflict copies
3. Overwrite the local artifact with the issue's title and description
4. Optionally import (or reconcile) unmapped issues carrying the pull label

Both directions process items one at a time. A failure on one item is
recorded and the run moves on; the mapping file is written once at the end.
"""

from __future__ import annotations

import logging

from reffy.core.domain.entities import (
    DEFAULT_KIND,
    DEFAULT_MIME_TYPE,
    Artifact,
    MappingEntry,
    RemoteIssue,
    utc_now_iso,
)
from reffy.core.exceptions import ArtifactStoreError
from reffy.core.ports.artifact_source import ArtifactSourcePort
from reffy.core.ports.config_provider import AppConfig
from reffy.core.ports.remote_gateway import RemoteGatewayPort

from .fingerprint import FingerprintIndex
from .labels import LabelResolver
from .mapping import MappingFile, MappingStore
from .results import PullResult, PushResult, RunResult


CONFLICT_SOURCE = "linear"
CONFLICT_NOTE = "Local edits detected during pull; conflict copy created."
IMPORTED_TAGS = ("linear", "imported")
UNTITLED = "Untitled"


class SyncEngine:
    """
    Orchestrates push and pull between the artifact store and the tracker.

    The engine owns the conflict policy and the mapping lifecycle; storage
    and transport are supplied through the two ports.
    """

    def __init__(
        self,
        gateway: RemoteGatewayPort,
        artifacts: ArtifactSourcePort,
        config: AppConfig,
        mapping_store: MappingStore | None = None,
    ):
        """
        Initialize the engine.

        Args:
            gateway: Remote tracker port
            artifacts: Local artifact store port
            config: Resolved application configuration
            mapping_store: Mapping persistence; defaults to the repo's
                .references/links/linear.json
        """
        self.gateway = gateway
        self.artifacts = artifacts
        self.config = config
        self.mapping_store = mapping_store or MappingStore.for_repo(config.repo_root)
        self.logger = logging.getLogger("SyncEngine")

    # -------------------------------------------------------------------------
    # Push
    # -------------------------------------------------------------------------

    def push(self) -> PushResult:
        """
        Push every non-conflict artifact to the tracker.

        Returns:
            PushResult with counts, affected issues, errors and warnings
        """
        result = PushResult()

        if not self.config.linear.is_configured():
            result.fail("Linear not configured")
            return result

        try:
            team_id = self.config.linear.team_id or self.gateway.get_first_team_id()
        except Exception as e:
            result.fail(f"Failed to resolve Linear team: {e}")
            return result
        if not team_id:
            result.fail("No Linear team found")
            return result

        labels = LabelResolver(self.gateway)
        push_label = self.config.sync.push_label
        label_ids: list[str] | None = None
        if push_label:
            try:
                label_id = labels.resolve(team_id, push_label)
            except Exception as e:
                self.logger.warning(f"Label lookup for {push_label!r} failed: {e}")
                label_id = None
            if label_id:
                label_ids = [label_id]
            else:
                result.add_warning(f"push_label_not_found:{push_label}")

        mapping = self.mapping_store.load()
        try:
            artifacts = self.artifacts.list_artifacts()
        except ArtifactStoreError as e:
            result.fail(f"Failed to list artifacts: {e}")
            return result

        try:
            remote_issues = self.gateway.list_issues(self.config.sync.push_list_limit)
        except Exception as e:
            self.logger.warning(f"Listing remote issues failed, matching disabled: {e}")
            result.add_warning(f"list_issues_failed:{e}")
            remote_issues = []

        candidates = [i for i in remote_issues if i.id and i.has_label(push_label)]
        remote_index = FingerprintIndex.build(
            candidates, lambda i: i.title, lambda i: i.description
        )
        claimed = mapping.issue_ids()

        self.logger.info(
            f"Pushing {len(artifacts)} artifacts "
            f"({len(mapping)} mapped, {len(candidates)} reusable remote issues)"
        )

        for artifact in artifacts:
            if artifact.is_conflict:
                result.skipped_conflict += 1
                continue
            try:
                self._push_artifact(
                    artifact, mapping, remote_index, claimed, team_id, label_ids, result
                )
            except Exception as e:
                self.logger.warning(f"Push failed for {artifact.id}: {e}")
                result.add_failed_operation("push", artifact.id, e)
                result.skipped += 1

        self._save(mapping, result)
        self.logger.info("Push complete: " + " ".join(result.summary()))
        return result

    def _push_artifact(
        self,
        artifact: Artifact,
        mapping: MappingFile,
        remote_index: FingerprintIndex[RemoteIssue],
        claimed: set[str],
        team_id: str,
        label_ids: list[str] | None,
        result: PushResult,
    ) -> None:
        title = artifact.name or UNTITLED
        description = self._artifact_description(artifact)
        entry = mapping.get(artifact.id)

        if entry is not None and entry.issue_id:
            ref = self.gateway.update_issue(entry.issue_id, title, description)
            entry.issue_identifier = ref.identifier
            entry.issue_team_id = team_id
            result.updated += 1
            result.updated_issue_identifiers.append(ref.identifier)
        else:
            match = remote_index.first_unclaimed(title, description, lambda i: i.id in claimed)
            if match is not None:
                entry = MappingEntry.from_issue(match)
                mapping.set(artifact.id, entry)
                claimed.add(match.id)
                result.reused += 1
                if match.identifier:
                    result.reused_issue_identifiers.append(match.identifier)
                self.logger.debug(f"Reusing {match.identifier or match.id} for {artifact.id}")
            else:
                ref = self.gateway.create_issue(
                    title,
                    description,
                    team_id,
                    project_id=self.config.linear.project_id,
                    label_ids=label_ids,
                )
                entry = MappingEntry(issue_id=ref.id, issue_identifier=ref.identifier)
                mapping.set(artifact.id, entry)
                claimed.add(ref.id)
                result.created += 1
                result.created_issue_ids.append(ref.id)
                result.created_issue_identifiers.append(ref.identifier)

        self._sync_attachment(artifact, entry, title)
        entry.last_pushed_at = utc_now_iso()

    def _sync_attachment(self, artifact: Artifact, entry: MappingEntry, title: str) -> None:
        """Upload the binary when it changed since the last upload."""
        if not entry.issue_id or artifact.mime_type == DEFAULT_MIME_TYPE:
            return
        signature = self.artifacts.content_signature(artifact)
        if signature is None or entry.attachment_matches(signature):
            return

        filename = self.artifacts.get_artifact_path(artifact).name
        content = self.artifacts.read_bytes(artifact)
        slot = self.gateway.request_upload_slot(artifact.mime_type, filename, signature.size)
        self.gateway.upload_asset(slot, content, artifact.mime_type)
        attachment_id = self.gateway.create_attachment(entry.issue_id, title, slot.asset_url)

        entry.attachment_id = attachment_id
        entry.attachment_url = slot.asset_url
        entry.attachment_mtime = signature.mtime
        entry.attachment_size = signature.size
        self.logger.debug(f"Uploaded {filename} to {entry.issue_identifier or entry.issue_id}")

    def _artifact_description(self, artifact: Artifact) -> str:
        if not artifact.is_text:
            return f"Binary artifact: {self.artifacts.get_artifact_path(artifact).name}"
        return self.artifacts.read_text(artifact) or ""

    # -------------------------------------------------------------------------
    # Pull
    # -------------------------------------------------------------------------

    def pull(self) -> PullResult:
        """
        Refresh mapped artifacts from the tracker, then optionally import.

        Returns:
            PullResult with counts, affected issues, conflicts and errors
        """
        result = PullResult()

        if not self.config.linear.is_configured():
            result.fail("Linear not configured")
            return result
        if self.config.sync.pull_create and not self.config.sync.pull_label:
            result.fail("pull_create requires a pull label (LINEAR_PULL_LABEL)")
            return result

        mapping = self.mapping_store.load()
        self.logger.info(f"Pulling {len(mapping)} mapped artifacts")

        for artifact_id, entry in mapping.items():
            if not entry.issue_id:
                result.skipped += 1
                continue
            try:
                self._pull_entry(artifact_id, entry, result)
            except Exception as e:
                self.logger.warning(f"Pull failed for {artifact_id}: {e}")
                result.add_failed_operation("pull", artifact_id, e)
                result.skipped += 1

        if self.config.sync.pull_create:
            self._pull_create(mapping, result)

        self._save(mapping, result)
        self.logger.info("Pull complete: " + " ".join(result.summary()))
        return result

    def _pull_entry(self, artifact_id: str, entry: MappingEntry, result: PullResult) -> None:
        issue = self.gateway.get_issue(entry.issue_id)
        description = issue.description or ""

        artifact = self.artifacts.get_artifact(artifact_id)
        local_content = (self.artifacts.read_text(artifact) or "") if artifact else ""

        if artifact is not None and local_content != description:
            if self._edited_since_sync(artifact, entry):
                if self.config.sync.pull_create_conflicts:
                    copy = self.artifacts.create_conflict_copy(
                        artifact_id, source=CONFLICT_SOURCE, note=CONFLICT_NOTE
                    )
                    if copy is not None:
                        result.conflict_artifact_ids.append(artifact_id)
                        self.logger.info(f"Local edits to {artifact_id} preserved as {copy.id}")
                    else:
                        self.logger.warning(f"Conflict copy of {artifact_id} failed")
                        result.add_warning(f"conflict_copy_failed:{artifact_id}")
                else:
                    self.logger.info(f"Local edits to {artifact_id} overwritten (conflict copies off)")

        updated = self.artifacts.update_artifact(artifact_id, name=issue.title, content=description)
        if updated is None:
            result.skipped += 1
            return

        entry.refresh_from_issue(issue)
        entry.last_pulled_at = utc_now_iso()
        result.updated += 1
        if issue.identifier:
            result.updated_issue_identifiers.append(issue.identifier)

    @staticmethod
    def _edited_since_sync(artifact: Artifact, entry: MappingEntry) -> bool:
        """Whether the artifact changed after the last push or pull."""
        local_updated = artifact.updated
        if local_updated is None:
            return False
        last_synced = entry.last_synced_at
        return last_synced is None or local_updated > last_synced

    def _pull_create(self, mapping: MappingFile, result: PullResult) -> None:
        """Import unmapped labelled issues, reconciling with existing artifacts."""
        pull_label = self.config.sync.pull_label

        local_index: FingerprintIndex[Artifact] = FingerprintIndex()
        try:
            for artifact in self.artifacts.list_artifacts():
                if artifact.is_conflict:
                    continue
                local_index.add(artifact, artifact.name, self._artifact_description(artifact))
            issues = self.gateway.list_issues(self.config.sync.pull_list_limit)
        except Exception as e:
            self.logger.warning(f"Pull-create aborted: {e}")
            result.add_error(f"pull_create: {e}")
            return

        mapped_artifacts = set(mapping.artifacts)
        mapped_issues = mapping.issue_ids()

        for issue in issues:
            if not issue.id or issue.id in mapped_issues or not issue.has_label(pull_label):
                continue
            try:
                self._import_issue(
                    issue, mapping, local_index, mapped_artifacts, mapped_issues, result
                )
            except Exception as e:
                self.logger.warning(f"Pull-create failed for {issue.id}: {e}")
                result.add_failed_operation("pull_create", f"pull_create:{issue.id}", e)

    def _import_issue(
        self,
        issue: RemoteIssue,
        mapping: MappingFile,
        local_index: FingerprintIndex[Artifact],
        mapped_artifacts: set[str],
        mapped_issues: set[str],
        result: PullResult,
    ) -> None:
        title = issue.title or UNTITLED
        description = issue.description or ""

        match = local_index.first_unclaimed(title, description, lambda a: a.id in mapped_artifacts)
        if match is not None:
            entry = MappingEntry.from_issue(issue)
            entry.last_pulled_at = utc_now_iso()
            mapping.set(match.id, entry)
            mapped_artifacts.add(match.id)
            mapped_issues.add(issue.id)
            result.reconciled += 1
            if issue.identifier:
                result.reconciled_issue_identifiers.append(issue.identifier)
            self.logger.debug(f"Reconciled {issue.identifier or issue.id} onto {match.id}")
            return

        if local_index.has_title(title):
            result.skipped_existing_title += 1
            return

        artifact = self.artifacts.create_artifact(
            name=title,
            content=description,
            kind=DEFAULT_KIND,
            mime_type=DEFAULT_MIME_TYPE,
            tags=list(IMPORTED_TAGS),
        )
        entry = MappingEntry.from_issue(issue)
        entry.last_pulled_at = utc_now_iso()
        mapping.set(artifact.id, entry)
        mapped_artifacts.add(artifact.id)
        mapped_issues.add(issue.id)
        # Later issues with the same title in this batch are skipped
        local_index.add(artifact, title, description)

        result.imported += 1
        if issue.identifier:
            result.created_issue_identifiers.append(issue.identifier)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _save(self, mapping: MappingFile, result: RunResult) -> None:
        try:
            self.mapping_store.save(mapping)
        except ArtifactStoreError as e:
            self.logger.error(str(e))
            result.fail(str(e))
