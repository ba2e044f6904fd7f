"""
References Store - File-backed artifact store under `.references/`.

Layout:
    .references/manifest.json     artifact and conflict records
    .references/artifacts/        one file per artifact

The manifest is read on every call and rewritten after every change, so
separate store instances over the same repo always agree.
"""

from __future__ import annotations

import json
import logging
import mimetypes
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Any

from reffy.core.domain.entities import (
    CONFLICT_SUFFIX,
    CONFLICT_TAG,
    DEFAULT_KIND,
    DEFAULT_MIME_TYPE,
    Artifact,
    ConflictRecord,
    ContentSignature,
    parse_timestamp,
    utc_now_iso,
)
from reffy.core.exceptions import ArtifactStoreError
from reffy.core.ports.artifact_source import ArtifactSourcePort


MANIFEST_VERSION = 1
REFERENCES_DIR = ".references"

KIND_EXTENSIONS: dict[str, list[str]] = {
    "note": [".md"],
    "json": [".json"],
    "diagram": [".excalidraw"],
    "image": [".png", ".jpg", ".jpeg"],
    "html": [".html", ".htm"],
    "pdf": [".pdf"],
    "doc": [".doc", ".docx"],
    "file": [],
}

_EXTENSION_TYPES: dict[str, tuple[str, str]] = {
    ".excalidraw": ("diagram", "application/json"),
    ".png": ("image", "image/png"),
    ".jpg": ("image", "image/jpeg"),
    ".jpeg": ("image", "image/jpeg"),
    ".html": ("html", "text/html"),
    ".htm": ("html", "text/html"),
    ".pdf": ("pdf", "application/pdf"),
    ".doc": ("doc", "application/msword"),
    ".docx": (
        "doc",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    ".json": ("json", "application/json"),
    ".md": ("note", "text/markdown"),
}

_SLUG_DROP = re.compile(r"[^\w\- ]")
_WHITESPACE = re.compile(r"\s+")


def infer_artifact_type(filename: str) -> tuple[str, str]:
    """
    Infer (kind, mime_type) from a file's extension.

    Unknown extensions are kind "file" with a guessed mime type.
    """
    ext = PurePosixPath(filename).suffix.lower()
    if ext in _EXTENSION_TYPES:
        return _EXTENSION_TYPES[ext]
    guessed, _ = mimetypes.guess_type(PurePosixPath(filename).name)
    return "file", guessed or "application/octet-stream"


def slugify(name: str) -> str:
    """Filesystem-safe lowercase slug; "untitled" when nothing survives."""
    cleaned = _SLUG_DROP.sub("", name).strip()
    cleaned = _WHITESPACE.sub("-", cleaned).lower()
    return cleaned or "untitled"


def is_safe_relative_path(filename: str) -> bool:
    """Whether the filename stays inside the artifacts directory."""
    path = PurePosixPath(filename.replace("\\", "/"))
    if path.is_absolute() or not filename:
        return False
    return ".." not in path.parts


@dataclass
class ManifestValidation:
    """Outcome of validating a manifest against the artifacts directory."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    artifact_count: int = 0

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "artifact_count": self.artifact_count,
        }


@dataclass
class ReindexResult:
    added: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"added": self.added, "total": self.total}


class ReferencesStore(ArtifactSourcePort):
    """
    ArtifactSourcePort backed by a `.references/` directory.

    Example:
        >>> store = ReferencesStore("/path/to/repo")
        >>> artifact = store.create_artifact("Login Flow", content="draft notes")
        >>> store.read_text(artifact)
        'draft notes'
    """

    def __init__(self, repo_root: str | Path):
        self.repo_root = Path(repo_root)
        self.refs_dir = self.repo_root / REFERENCES_DIR
        self.artifacts_dir = self.refs_dir / "artifacts"
        self.manifest_path = self.refs_dir / "manifest.json"
        self.logger = logging.getLogger("ReferencesStore")
        self._ensure_structure()

    def _ensure_structure(self) -> None:
        try:
            self.artifacts_dir.mkdir(parents=True, exist_ok=True)
            if not self.manifest_path.exists():
                self._write_manifest(self._empty_manifest())
        except OSError as e:
            raise ArtifactStoreError(f"Cannot initialise {self.refs_dir}", cause=e) from e

    # -------------------------------------------------------------------------
    # Manifest I/O
    # -------------------------------------------------------------------------

    @staticmethod
    def _empty_manifest() -> dict[str, Any]:
        now = utc_now_iso()
        return {
            "version": MANIFEST_VERSION,
            "created_at": now,
            "updated_at": now,
            "artifacts": [],
            "conflicts": [],
        }

    def _read_manifest(self) -> dict[str, Any]:
        try:
            raw = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            self.logger.debug(f"Manifest unreadable, treating as empty: {e}")
            return self._empty_manifest()

        if isinstance(raw, list):
            now = utc_now_iso()
            return {
                "version": 0,
                "created_at": now,
                "updated_at": now,
                "artifacts": [a for a in raw if isinstance(a, dict)],
                "conflicts": [],
            }
        if not isinstance(raw, dict):
            return self._empty_manifest()

        artifacts = raw.get("artifacts")
        conflicts = raw.get("conflicts")
        return {
            "version": raw["version"] if isinstance(raw.get("version"), int) else MANIFEST_VERSION,
            "created_at": raw.get("created_at") if isinstance(raw.get("created_at"), str) else utc_now_iso(),
            "updated_at": raw.get("updated_at") if isinstance(raw.get("updated_at"), str) else utc_now_iso(),
            "artifacts": [a for a in artifacts if isinstance(a, dict)] if isinstance(artifacts, list) else [],
            "conflicts": [c for c in conflicts if isinstance(c, dict)] if isinstance(conflicts, list) else [],
        }

    def _write_manifest(self, manifest: dict[str, Any]) -> None:
        try:
            self.manifest_path.write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        except OSError as e:
            raise ArtifactStoreError(f"Cannot write {self.manifest_path}", cause=e) from e

    def _touch(self, manifest: dict[str, Any]) -> None:
        manifest["updated_at"] = utc_now_iso()
        self._write_manifest(manifest)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_artifacts(self) -> list[Artifact]:
        return [Artifact.from_dict(a) for a in self._read_manifest()["artifacts"]]

    def get_artifact(self, artifact_id: str) -> Artifact | None:
        for artifact in self.list_artifacts():
            if artifact.id == artifact_id:
                return artifact
        return None

    def get_artifact_path(self, artifact: Artifact) -> Path:
        return self.artifacts_dir / artifact.filename

    def read_text(self, artifact: Artifact) -> str | None:
        try:
            return self.get_artifact_path(artifact).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None

    def read_bytes(self, artifact: Artifact) -> bytes:
        try:
            return self.get_artifact_path(artifact).read_bytes()
        except OSError as e:
            raise ArtifactStoreError(
                f"Cannot read {artifact.filename}", artifact_id=artifact.id, cause=e
            ) from e

    def content_signature(self, artifact: Artifact) -> ContentSignature | None:
        try:
            stat = self.get_artifact_path(artifact).stat()
        except OSError:
            return None
        return ContentSignature(mtime=stat.st_mtime * 1000, size=stat.st_size)

    def list_conflicts(self) -> list[ConflictRecord]:
        return [ConflictRecord.from_dict(c) for c in self._read_manifest()["conflicts"]]

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def _unique_filename(self, base: str, ext: str = ".md") -> str:
        candidate = f"{base}{ext}"
        counter = 2
        while (self.artifacts_dir / candidate).exists():
            candidate = f"{base}-{counter}{ext}"
            counter += 1
        return candidate

    def _write_content(self, path: Path, content: str, artifact_id: str | None = None) -> int:
        try:
            path.write_text(content, encoding="utf-8")
            return path.stat().st_size
        except OSError as e:
            raise ArtifactStoreError(f"Cannot write {path.name}", artifact_id=artifact_id, cause=e) from e

    def create_artifact(
        self,
        name: str,
        content: str | None = None,
        kind: str | None = None,
        mime_type: str | None = None,
        tags: list[str] | None = None,
    ) -> Artifact:
        filename = self._unique_filename(slugify(name))
        path = self.artifacts_dir / filename
        size = self._write_content(path, content) if content is not None else 0

        now = utc_now_iso()
        artifact = Artifact(
            id=str(uuid.uuid4()),
            name=name,
            filename=filename,
            kind=kind or DEFAULT_KIND,
            mime_type=mime_type or DEFAULT_MIME_TYPE,
            size_bytes=size,
            tags=list(tags or []),
            created_at=now,
            updated_at=now,
        )

        manifest = self._read_manifest()
        manifest["artifacts"].append(artifact.to_dict())
        self._touch(manifest)
        self.logger.debug(f"Created artifact {artifact.id} ({filename})")
        return artifact

    def update_artifact(
        self,
        artifact_id: str,
        name: str | None = None,
        content: str | None = None,
        kind: str | None = None,
        mime_type: str | None = None,
        tags: list[str] | None = None,
    ) -> Artifact | None:
        manifest = self._read_manifest()
        for index, record in enumerate(manifest["artifacts"]):
            if record.get("id") == artifact_id:
                break
        else:
            return None

        artifact = Artifact.from_dict(record)
        if name is not None:
            artifact.name = name
        if kind is not None:
            artifact.kind = kind
        if mime_type is not None:
            artifact.mime_type = mime_type
        if tags is not None:
            artifact.tags = list(tags)
        if content is not None:
            artifact.size_bytes = self._write_content(
                self.get_artifact_path(artifact), content, artifact_id
            )

        artifact.updated_at = utc_now_iso()
        manifest["artifacts"][index] = artifact.to_dict()
        self._touch(manifest)
        return artifact

    def delete_artifact(self, artifact_id: str) -> bool:
        manifest = self._read_manifest()
        remaining = [a for a in manifest["artifacts"] if a.get("id") != artifact_id]
        if len(remaining) == len(manifest["artifacts"]):
            return False

        removed = next(a for a in manifest["artifacts"] if a.get("id") == artifact_id)
        self.get_artifact_path(Artifact.from_dict(removed)).unlink(missing_ok=True)
        manifest["artifacts"] = remaining
        self._touch(manifest)
        return True

    def record_conflict(
        self,
        artifact_id: str,
        source: str,
        note: str,
        conflict_artifact_id: str | None = None,
    ) -> ConflictRecord:
        record = ConflictRecord(
            artifact_id=artifact_id,
            source=source,
            note=note,
            conflict_artifact_id=conflict_artifact_id,
        )
        manifest = self._read_manifest()
        manifest["conflicts"].append(record.to_dict())
        self._touch(manifest)
        return record

    def create_conflict_copy(self, artifact_id: str, source: str, note: str) -> Artifact | None:
        original = self.get_artifact(artifact_id)
        if original is None:
            return None
        content = self.read_text(original)
        if content is None:
            return None

        copy = self.create_artifact(
            name=f"{original.name} {CONFLICT_SUFFIX}",
            content=content,
            kind=original.kind,
            mime_type=original.mime_type,
            tags=[*original.tags, CONFLICT_TAG],
        )
        self.record_conflict(artifact_id, source, note, conflict_artifact_id=copy.id)
        self.logger.info(f"Conflict copy {copy.id} created for {artifact_id}")
        return copy

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def reindex_artifacts(self) -> ReindexResult:
        """Add manifest records for files in the artifacts directory that have none."""
        manifest = self._read_manifest()
        known = {a.get("filename") for a in manifest["artifacts"]}
        result = ReindexResult()

        for path in sorted(self.artifacts_dir.iterdir()):
            if not path.is_file() or path.name in known:
                continue
            kind, mime_type = infer_artifact_type(path.name)
            now = utc_now_iso()
            artifact = Artifact(
                id=str(uuid.uuid4()),
                name=path.stem.replace("-", " ").strip() or "untitled",
                filename=path.name,
                kind=kind,
                mime_type=mime_type,
                size_bytes=path.stat().st_size,
                created_at=now,
                updated_at=now,
            )
            manifest["artifacts"].append(artifact.to_dict())
            result.added += 1
            self.logger.debug(f"Indexed {path.name} as {kind}")

        if result.added:
            self._touch(manifest)
        result.total = len(manifest["artifacts"])
        return result

    def validate_manifest(self) -> ManifestValidation:
        """Check the manifest file against its schema and the files on disk."""
        result = ManifestValidation()
        try:
            raw = json.loads(self.manifest_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            result.errors.append(f"manifest read/parse failed: {e}")
            return result

        if not isinstance(raw, dict):
            result.errors.append("manifest root must be an object")
            return result

        if raw.get("version") != MANIFEST_VERSION:
            result.errors.append(f"version must be {MANIFEST_VERSION}")
        for key in ("created_at", "updated_at"):
            if not _is_iso(raw.get(key)):
                result.errors.append(f"{key} must be an ISO timestamp")
        if not isinstance(raw.get("artifacts"), list):
            result.errors.append("artifacts must be an array")

        artifacts = raw["artifacts"] if isinstance(raw.get("artifacts"), list) else []
        result.artifact_count = len(artifacts)
        seen_ids: set[str] = set()
        seen_files: set[str] = set()

        for index, item in enumerate(artifacts):
            if not _validate_artifact_shape(item, index, result.errors):
                continue
            self._validate_artifact_files(item, index, seen_ids, seen_files, result)

        return result

    def _validate_artifact_files(
        self,
        item: dict[str, Any],
        index: int,
        seen_ids: set[str],
        seen_files: set[str],
        result: ManifestValidation,
    ) -> None:
        artifact_id = item.get("id")
        filename = item.get("filename")
        if not isinstance(filename, str) or not filename:
            return

        if artifact_id in seen_ids:
            result.errors.append(f"duplicate artifact id: {artifact_id}")
        if isinstance(artifact_id, str):
            seen_ids.add(artifact_id)
        if filename in seen_files:
            result.errors.append(f"duplicate artifact filename: {filename}")
        seen_files.add(filename)

        if not is_safe_relative_path(filename):
            result.errors.append(f"artifacts[{index}].filename must be a safe relative path")
            return

        kind = item.get("kind")
        if kind not in KIND_EXTENSIONS:
            result.errors.append(
                f"artifacts[{index}].kind must be one of: {', '.join(KIND_EXTENSIONS)}"
            )
        else:
            allowed = KIND_EXTENSIONS[kind]
            ext = PurePosixPath(filename).suffix.lower()
            if allowed and ext not in allowed:
                result.errors.append(
                    f'artifacts[{index}] kind "{kind}" requires one of: {", ".join(allowed)}'
                )

        path = self.artifacts_dir / filename
        if not path.is_file():
            result.errors.append(f"artifacts[{index}] file is missing: {filename}")
            return

        disk_size = path.stat().st_size
        if disk_size != item.get("size_bytes"):
            result.warnings.append(
                f"artifacts[{index}] size_bytes ({item.get('size_bytes')}) "
                f"differs from disk size ({disk_size})"
            )


def _is_iso(value: Any) -> bool:
    return isinstance(value, str) and parse_timestamp(value) is not None


def _validate_artifact_shape(value: Any, index: int, errors: list[str]) -> bool:
    if not isinstance(value, dict):
        errors.append(f"artifacts[{index}] must be an object")
        return False

    for key in ("id", "name", "filename", "kind", "mime_type", "created_at", "updated_at"):
        if not isinstance(value.get(key), str) or not value.get(key):
            errors.append(f"artifacts[{index}].{key} must be a non-empty string")

    size = value.get("size_bytes")
    if isinstance(size, bool) or not isinstance(size, (int, float)) or size < 0:
        errors.append(f"artifacts[{index}].size_bytes must be a non-negative number")

    tags = value.get("tags")
    if not isinstance(tags, list) or any(not isinstance(t, str) for t in tags):
        errors.append(f"artifacts[{index}].tags must be an array of strings")

    for key in ("created_at", "updated_at"):
        if isinstance(value.get(key), str) and value.get(key) and not _is_iso(value.get(key)):
            errors.append(f"artifacts[{index}].{key} must be an ISO timestamp")

    return True
