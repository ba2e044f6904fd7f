"""
Sync Results - Outcome reports for push, pull and cleanup runs.

A run's status stays "ok" when individual items fail; callers inspect
`errors` (or `has_errors`) to learn about partial failure. Only
configuration problems and an unwritable mapping file produce "error".
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any


STATUS_OK = "ok"
STATUS_ERROR = "error"


@dataclass
class FailedOperation:
    """
    Details of a failed per-item operation.

    Provides context about what failed, where, and why for
    better error reporting and debugging.
    """

    operation: str  # e.g., "push", "pull", "pull_create", "archive"
    item_id: str  # Artifact id, or issue id for pull-create
    error: str

    def __str__(self) -> str:
        return f"{self.item_id}: {self.error}"


@dataclass
class RunResult:
    """Fields and helpers shared by every run result."""

    status: str = STATUS_OK
    message: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    failed_operations: list[FailedOperation] = field(default_factory=list)

    def fail(self, message: str) -> None:
        """Mark the whole run as failed (configuration or persistence problem)."""
        self.status = STATUS_ERROR
        self.message = message

    def add_failed_operation(self, operation: str, item_id: str, error: object) -> None:
        """
        Record a per-item failure. Does not change the run status.

        Args:
            operation: The operation that failed.
            item_id: The artifact or issue being processed.
            error: The exception or message.
        """
        failed = FailedOperation(operation=operation, item_id=item_id, error=str(error))
        self.failed_operations.append(failed)
        self.errors.append(str(failed))

    def add_error(self, error: str) -> None:
        """Record a run-level error string that is not tied to one item."""
        self.errors.append(error)

    def add_warning(self, warning: str) -> None:
        """Add a warning message (does not affect status)."""
        self.warnings.append(warning)

    def summary(self) -> list[str]:
        """Counters as key=value strings."""
        return []

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation, without internal bookkeeping."""
        data: dict[str, Any] = {}
        for f in fields(self):
            if f.name == "failed_operations":
                continue
            if f.name == "message" and self.message is None:
                continue
            value = getattr(self, f.name)
            data[f.name] = list(value) if isinstance(value, list) else value
        return data


@dataclass
class PushResult(RunResult):
    """Result of pushing local artifacts to the tracker."""

    created: int = 0
    updated: int = 0
    reused: int = 0
    skipped_conflict: int = 0
    skipped: int = 0

    created_issue_ids: list[str] = field(default_factory=list)
    created_issue_identifiers: list[str] = field(default_factory=list)
    updated_issue_identifiers: list[str] = field(default_factory=list)
    reused_issue_identifiers: list[str] = field(default_factory=list)

    def summary(self) -> list[str]:
        return [
            f"created={self.created}",
            f"updated={self.updated}",
            f"reused={self.reused}",
            f"skipped_conflict={self.skipped_conflict}",
            f"skipped={self.skipped}",
        ]


@dataclass
class PullResult(RunResult):
    """Result of pulling tracker issues into local artifacts."""

    updated: int = 0
    reconciled: int = 0
    imported: int = 0
    skipped_existing_title: int = 0
    skipped: int = 0

    created_issue_identifiers: list[str] = field(default_factory=list)
    updated_issue_identifiers: list[str] = field(default_factory=list)
    reconciled_issue_identifiers: list[str] = field(default_factory=list)
    conflict_artifact_ids: list[str] = field(default_factory=list)

    def summary(self) -> list[str]:
        return [
            f"updated={self.updated}",
            f"reconciled={self.reconciled}",
            f"imported={self.imported}",
            f"skipped_existing_title={self.skipped_existing_title}",
            f"skipped={self.skipped}",
            f"conflicts={len(self.conflict_artifact_ids)}",
        ]


@dataclass
class CleanupCandidate:
    """A conflict artifact that still maps to a remote issue."""

    artifact_id: str
    filename: str
    issue_id: str
    issue_identifier: str | None = None

    def __str__(self) -> str:
        return (
            f"artifact={self.artifact_id} file={self.filename} "
            f"issue={self.issue_identifier or 'unknown'} ({self.issue_id})"
        )


@dataclass
class CleanupResult(RunResult):
    """Result of archiving issues that belong to conflict artifacts."""

    dry_run: bool = True
    candidates: list[CleanupCandidate] = field(default_factory=list)
    archived: int = 0
    failed: int = 0

    def summary(self) -> list[str]:
        return [
            f"candidates={len(self.candidates)}",
            f"archived={self.archived}",
            f"failed={self.failed}",
        ]

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["candidates"] = [
            {
                "artifact_id": c.artifact_id,
                "filename": c.filename,
                "issue_id": c.issue_id,
                "issue_identifier": c.issue_identifier,
            }
            for c in self.candidates
        ]
        return data
