"""
Shared pytest fixtures for the reffy test suite.

Fixture Categories:
- Fakes: in-memory RemoteGatewayPort and ArtifactSourcePort
- Configuration: AppConfig for a temporary repository
- Engine: SyncEngine and MappingStore wired to the fakes
"""

from __future__ import annotations

from collections import Counter
from pathlib import Path

import pytest

from reffy.application.sync import MappingStore, SyncEngine
from reffy.core.domain import (
    CONFLICT_SUFFIX,
    CONFLICT_TAG,
    DEFAULT_KIND,
    DEFAULT_MIME_TYPE,
    Artifact,
    ConflictRecord,
    ContentSignature,
    EntityRef,
    IssueRef,
    RemoteIssue,
    UploadSlot,
    utc_now_iso,
)
from reffy.core.exceptions import ArtifactStoreError, ResourceNotFoundError, TrackerError
from reffy.core.ports import (
    AppConfig,
    ArtifactSourcePort,
    LinearConfig,
    RemoteGatewayPort,
    SyncConfig,
)


# =============================================================================
# Fakes
# =============================================================================


class FakeGateway(RemoteGatewayPort):
    """
    In-memory Linear stand-in.

    `calls` counts every port method invocation. Titles in `fail_titles` make
    create/update raise, issue ids in `fail_archive` make archive raise.
    """

    def __init__(self, team_id: str = "team-1"):
        self.team = EntityRef(id=team_id, name="Engineering")
        self.issues: dict[str, RemoteIssue] = {}
        self.labels: dict[tuple[str, str], str] = {(team_id, "reffy"): "label-reffy"}
        self.calls: Counter[str] = Counter()
        self.fail_titles: set[str] = set()
        self.fail_archive: set[str] = set()
        self.archived: list[str] = []
        self.uploads: list[tuple[str, bytes, str]] = []
        self.attachments: list[tuple[str, str, str]] = []
        self._seq = 0

    @property
    def name(self) -> str:
        return "Fake"

    def add_issue(
        self,
        title: str,
        description: str = "",
        labels: list[str] | None = None,
    ) -> RemoteIssue:
        self._seq += 1
        issue = RemoteIssue(
            id=f"issue-{self._seq}",
            identifier=f"ENG-{self._seq}",
            title=title,
            description=description,
            team=self.team,
            labels=list(labels or []),
        )
        self.issues[issue.id] = issue
        return issue

    def get_first_team_id(self) -> str | None:
        self.calls["get_first_team_id"] += 1
        return self.team.id

    def resolve_label_id(self, team_id: str, label_name: str) -> str | None:
        self.calls["resolve_label_id"] += 1
        return self.labels.get((team_id, label_name))

    def create_issue(self, title, description, team_id, project_id=None, label_ids=None) -> IssueRef:
        self.calls["create_issue"] += 1
        if title in self.fail_titles:
            raise TrackerError("issue_create_failed")
        names = [name for (_, name), lid in self.labels.items() if lid in (label_ids or [])]
        issue = self.add_issue(title, description, names)
        return IssueRef(id=issue.id, identifier=issue.identifier)

    def update_issue(self, issue_id, title, description) -> IssueRef:
        self.calls["update_issue"] += 1
        if title in self.fail_titles:
            raise TrackerError("issue_update_failed", issue_key=issue_id)
        issue = self.issues[issue_id]
        issue.title = title
        issue.description = description
        return IssueRef(id=issue.id, identifier=issue.identifier)

    def get_issue(self, issue_id) -> RemoteIssue:
        self.calls["get_issue"] += 1
        if issue_id not in self.issues:
            raise ResourceNotFoundError("issue_not_found", issue_key=issue_id)
        return self.issues[issue_id]

    def list_issues(self, limit) -> list[RemoteIssue]:
        self.calls["list_issues"] += 1
        return list(self.issues.values())[:limit]

    def archive_issue(self, issue_id) -> bool:
        self.calls["archive_issue"] += 1
        if issue_id in self.fail_archive:
            raise TrackerError("issue_archive_failed", issue_key=issue_id)
        self.archived.append(issue_id)
        return True

    def request_upload_slot(self, content_type, filename, size) -> UploadSlot:
        self.calls["request_upload_slot"] += 1
        return UploadSlot(
            upload_url=f"https://uploads.example/{filename}",
            asset_url=f"https://assets.example/{filename}",
            headers={"x-amz-acl": "private"},
        )

    def upload_asset(self, slot, content, content_type) -> None:
        self.calls["upload_asset"] += 1
        self.uploads.append((slot.upload_url, content, content_type))

    def create_attachment(self, issue_id, title, asset_url) -> str:
        self.calls["create_attachment"] += 1
        self.attachments.append((issue_id, title, asset_url))
        return f"attachment-{len(self.attachments)}"


class FakeArtifactSource(ArtifactSourcePort):
    """In-memory artifact store with explicit control over timestamps and signatures."""

    def __init__(self) -> None:
        self.artifacts: dict[str, Artifact] = {}
        self.contents: dict[str, str | bytes] = {}
        self.signatures: dict[str, ContentSignature] = {}
        self.conflicts: list[ConflictRecord] = []
        self._seq = 0

    def add(
        self,
        name: str,
        content: str | bytes = "",
        mime_type: str = DEFAULT_MIME_TYPE,
        tags: list[str] | None = None,
        updated_at: str | None = None,
    ) -> Artifact:
        self._seq += 1
        now = updated_at or utc_now_iso()
        artifact = Artifact(
            id=f"art-{self._seq}",
            name=name,
            filename=f"file-{self._seq}.md" if mime_type == DEFAULT_MIME_TYPE else f"file-{self._seq}.bin",
            mime_type=mime_type,
            size_bytes=len(content),
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )
        self.artifacts[artifact.id] = artifact
        self.contents[artifact.id] = content
        self.signatures[artifact.id] = ContentSignature(mtime=1000.0, size=len(content))
        return artifact

    def list_artifacts(self) -> list[Artifact]:
        return list(self.artifacts.values())

    def get_artifact(self, artifact_id) -> Artifact | None:
        return self.artifacts.get(artifact_id)

    def get_artifact_path(self, artifact) -> Path:
        return Path("/refs/artifacts") / artifact.filename

    def read_text(self, artifact) -> str | None:
        content = self.contents.get(artifact.id)
        return content if isinstance(content, str) else None

    def read_bytes(self, artifact) -> bytes:
        content = self.contents.get(artifact.id)
        if content is None:
            raise ArtifactStoreError("missing", artifact_id=artifact.id)
        return content if isinstance(content, bytes) else content.encode()

    def content_signature(self, artifact) -> ContentSignature | None:
        return self.signatures.get(artifact.id)

    def create_artifact(self, name, content=None, kind=None, mime_type=None, tags=None) -> Artifact:
        artifact = self.add(name, content or "", mime_type or DEFAULT_MIME_TYPE, tags)
        artifact.kind = kind or DEFAULT_KIND
        return artifact

    def update_artifact(
        self, artifact_id, name=None, content=None, kind=None, mime_type=None, tags=None
    ) -> Artifact | None:
        artifact = self.artifacts.get(artifact_id)
        if artifact is None:
            return None
        if name is not None:
            artifact.name = name
        if content is not None:
            self.contents[artifact_id] = content
            artifact.size_bytes = len(content)
        if tags is not None:
            artifact.tags = list(tags)
        artifact.updated_at = utc_now_iso()
        return artifact

    def create_conflict_copy(self, artifact_id, source, note) -> Artifact | None:
        original = self.artifacts.get(artifact_id)
        if original is None:
            return None
        copy = self.add(
            f"{original.name} {CONFLICT_SUFFIX}",
            self.contents[artifact_id],
            original.mime_type,
            [*original.tags, CONFLICT_TAG],
        )
        self.conflicts.append(ConflictRecord(artifact_id, source, note, copy.id))
        return copy

    def list_conflicts(self) -> list[ConflictRecord]:
        return list(self.conflicts)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def artifacts() -> FakeArtifactSource:
    return FakeArtifactSource()


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Configured for team-1 with the default push label."""
    return AppConfig(
        linear=LinearConfig(api_key="lin_api_test", team_id="team-1"),
        sync=SyncConfig(),
        repo_root=str(tmp_path),
    )


@pytest.fixture
def mapping_store(tmp_path: Path) -> MappingStore:
    return MappingStore.for_repo(tmp_path)


@pytest.fixture
def engine(gateway, artifacts, app_config, mapping_store) -> SyncEngine:
    return SyncEngine(gateway, artifacts, app_config, mapping_store)
