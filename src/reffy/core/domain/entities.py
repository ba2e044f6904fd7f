"""
Domain Entities - Objects with identity that persist over time.

Artifacts live in the local reference store, issues live in Linear, and
mapping entries tie the two together across sync runs.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any


DEFAULT_KIND = "note"
DEFAULT_MIME_TYPE = "text/markdown"
CONFLICT_TAG = "conflict"
CONFLICT_SUFFIX = "(conflict)"

_CONFLICT_NAME_PATTERN = re.compile(re.escape(CONFLICT_SUFFIX), re.IGNORECASE)


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str | None) -> datetime | None:
    """
    Parse an ISO-8601 timestamp into an aware datetime.

    Naive values are taken to be UTC. Empty or unparseable values give None.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def latest(*values: datetime | None) -> datetime | None:
    """Return the latest of the given timestamps, ignoring None."""
    present = [v for v in values if v is not None]
    return max(present) if present else None


def _as_int(value: Any) -> int:
    """Coerce a manifest number, falling back to 0 for junk."""
    if isinstance(value, bool):
        return 0
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass
class Artifact:
    """
    A file-backed record in the local reference store.

    The id is stable for the artifact's lifetime and never reused.
    """

    id: str
    name: str
    filename: str
    kind: str = DEFAULT_KIND
    mime_type: str = DEFAULT_MIME_TYPE
    size_bytes: int = 0
    tags: list[str] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""

    @property
    def is_text(self) -> bool:
        """Whether the content is readable text."""
        return self.mime_type.startswith("text/")

    @property
    def is_conflict(self) -> bool:
        """Whether this artifact is a conflict copy and must never be pushed."""
        if any(tag.lower() == CONFLICT_TAG for tag in self.tags):
            return True
        return bool(_CONFLICT_NAME_PATTERN.search(self.name or ""))

    @property
    def updated(self) -> datetime | None:
        return parse_timestamp(self.updated_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the manifest representation."""
        return {
            "id": self.id,
            "name": self.name,
            "filename": self.filename,
            "kind": self.kind,
            "mime_type": self.mime_type,
            "size_bytes": self.size_bytes,
            "tags": list(self.tags),
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Artifact:
        """Create from a manifest record, tolerating missing fields."""
        tags = data.get("tags")
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name") or ""),
            filename=str(data.get("filename") or ""),
            kind=str(data.get("kind") or DEFAULT_KIND),
            mime_type=str(data.get("mime_type") or DEFAULT_MIME_TYPE),
            size_bytes=_as_int(data.get("size_bytes")),
            tags=[str(t) for t in tags] if isinstance(tags, list) else [],
            created_at=str(data.get("created_at") or ""),
            updated_at=str(data.get("updated_at") or ""),
        )


@dataclass(frozen=True)
class EntityRef:
    """Reference to a team or project on the remote side."""

    id: str | None = None
    name: str | None = None


@dataclass
class RemoteIssue:
    """An issue as reported by the remote tracker."""

    id: str
    identifier: str = ""
    title: str = ""
    description: str = ""
    team: EntityRef | None = None
    project: EntityRef | None = None
    labels: list[str] = field(default_factory=list)

    def has_label(self, name: str | None) -> bool:
        """Whether the issue carries the label. No label name matches everything."""
        if not name:
            return True
        return name in self.labels


@dataclass(frozen=True)
class IssueRef:
    """Identity returned by create/update calls."""

    id: str
    identifier: str


@dataclass(frozen=True)
class UploadSlot:
    """Pre-signed destination for a binary upload."""

    upload_url: str
    asset_url: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ContentSignature:
    """On-disk modification time (ms since epoch) and size of an artifact file."""

    mtime: float
    size: int


@dataclass
class MappingEntry:
    """
    Persisted association between one artifact and one remote issue.

    Every field is optional; unset fields are omitted when serialized so the
    mapping file stays compact.
    """

    issue_id: str | None = None
    issue_identifier: str | None = None
    issue_team_name: str | None = None
    issue_team_id: str | None = None
    issue_project_name: str | None = None
    issue_project_id: str | None = None
    attachment_id: str | None = None
    attachment_url: str | None = None
    attachment_mtime: float | None = None
    attachment_size: int | None = None
    last_pushed_at: str | None = None
    last_pulled_at: str | None = None

    @classmethod
    def from_issue(cls, issue: RemoteIssue) -> MappingEntry:
        """Build an entry pointing at an existing issue, caching team/project."""
        entry = cls(issue_id=issue.id, issue_identifier=issue.identifier or None)
        entry.refresh_from_issue(issue)
        return entry

    def refresh_from_issue(self, issue: RemoteIssue) -> None:
        """Refresh the cached display fields from a fetched issue."""
        if issue.identifier:
            self.issue_identifier = issue.identifier
        self.issue_team_name = issue.team.name if issue.team else None
        self.issue_team_id = issue.team.id if issue.team else None
        self.issue_project_name = issue.project.name if issue.project else None
        self.issue_project_id = issue.project.id if issue.project else None

    @property
    def last_synced_at(self) -> datetime | None:
        """The later of the last push and the last pull."""
        return latest(
            parse_timestamp(self.last_pulled_at),
            parse_timestamp(self.last_pushed_at),
        )

    def attachment_matches(self, signature: ContentSignature) -> bool:
        """Whether the last uploaded binary has this on-disk signature."""
        return self.attachment_mtime == signature.mtime and self.attachment_size == signature.size

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MappingEntry:
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class ConflictRecord:
    """
    Append-only record of a local edit preserved during pull.

    Attributes:
        artifact_id: The artifact whose content was overwritten.
        source: Where the overwriting change came from (e.g. "linear").
        note: Free-text explanation.
        conflict_artifact_id: Id of the copy holding the pre-pull content.
        created_at: When the record was written.
    """

    artifact_id: str
    source: str
    note: str
    conflict_artifact_id: str | None = None
    created_at: str = field(default_factory=utc_now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "artifact_id": self.artifact_id,
            "source": self.source,
            "note": self.note,
            "conflict_artifact_id": self.conflict_artifact_id,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConflictRecord:
        return cls(
            artifact_id=str(data.get("artifact_id", "")),
            source=str(data.get("source", "")),
            note=str(data.get("note", "")),
            conflict_artifact_id=data.get("conflict_artifact_id"),
            created_at=str(data.get("created_at") or ""),
        )
