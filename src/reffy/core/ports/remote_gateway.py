"""
Remote Gateway Port - Abstract interface for the remote issue tracker.

Implementations:
- LinearGateway: Linear GraphQL API

The sync engine only talks to the tracker through this interface, so it can
be exercised against in-memory fakes. Every method raises a TrackerError
subclass when the remote rejects the request or the transport fails; the
engine records those errors without inspecting them.
"""

from abc import ABC, abstractmethod

from reffy.core.domain.entities import IssueRef, RemoteIssue, UploadSlot
from reffy.core.exceptions import (
    AccessDeniedError,
    AuthenticationError,
    RateLimitError,
    ResourceNotFoundError,
    TrackerError,
    TransientError,
)


__all__ = [
    "AccessDeniedError",
    "AuthenticationError",
    "RateLimitError",
    "RemoteGatewayPort",
    "ResourceNotFoundError",
    "TrackerError",
    "TransientError",
]


class RemoteGatewayPort(ABC):
    """
    Capability interface for the remote tracker.

    Methods mirror the operations the sync engine needs and nothing more.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Get the tracker name (e.g., 'Linear')."""
        ...

    # -------------------------------------------------------------------------
    # Teams and labels
    # -------------------------------------------------------------------------

    @abstractmethod
    def get_first_team_id(self) -> str | None:
        """Id of the first team visible to the credential, used as a fallback."""
        ...

    @abstractmethod
    def resolve_label_id(self, team_id: str, label_name: str) -> str | None:
        """
        Look up a label by exact name within a team.

        Returns:
            The label id, or None when the team has no such label.
        """
        ...

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------

    @abstractmethod
    def create_issue(
        self,
        title: str,
        description: str,
        team_id: str,
        project_id: str | None = None,
        label_ids: list[str] | None = None,
    ) -> IssueRef:
        """Create an issue and return its id and short code."""
        ...

    @abstractmethod
    def update_issue(self, issue_id: str, title: str, description: str) -> IssueRef:
        """Replace an issue's title and description."""
        ...

    @abstractmethod
    def get_issue(self, issue_id: str) -> RemoteIssue:
        """Fetch one issue by id."""
        ...

    @abstractmethod
    def list_issues(self, limit: int) -> list[RemoteIssue]:
        """List up to `limit` issues, labels included."""
        ...

    @abstractmethod
    def archive_issue(self, issue_id: str) -> bool:
        """Archive an issue. Returns True on success."""
        ...

    # -------------------------------------------------------------------------
    # Attachments
    # -------------------------------------------------------------------------

    @abstractmethod
    def request_upload_slot(self, content_type: str, filename: str, size: int) -> UploadSlot:
        """Reserve a pre-signed upload destination for a binary."""
        ...

    @abstractmethod
    def upload_asset(self, slot: UploadSlot, content: bytes, content_type: str) -> None:
        """Transfer the binary to a reserved upload slot."""
        ...

    @abstractmethod
    def create_attachment(self, issue_id: str, title: str, asset_url: str) -> str:
        """Attach an uploaded asset to an issue. Returns the attachment id."""
        ...
