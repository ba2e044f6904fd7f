"""
Linear Adapter - Implements RemoteGatewayPort for Linear.

Converts GraphQL payloads into domain objects and turns unsuccessful
mutations into TrackerErrors. Transport concerns (auth, retry) live in
LinearApiClient.
"""

from __future__ import annotations

import logging
from typing import Any

from reffy.core.domain.entities import EntityRef, IssueRef, RemoteIssue, UploadSlot
from reffy.core.exceptions import ResourceNotFoundError, TrackerError
from reffy.core.ports.config_provider import LinearConfig
from reffy.core.ports.remote_gateway import RemoteGatewayPort

from .client import LinearApiClient


ISSUE_FIELDS = "id identifier title description team { id name } project { id name }"

TEAMS_QUERY = "query { teams { nodes { id } } }"

TEAM_LABELS_QUERY = """
query TeamLabels($id: String!) {
  team(id: $id) { labels { nodes { id name } } }
}
"""

ISSUE_QUERY = f"""
query Issue($id: String!) {{
  issue(id: $id) {{ {ISSUE_FIELDS} }}
}}
"""

ISSUES_QUERY = f"""
query Issues($first: Int!) {{
  issues(first: $first) {{ nodes {{ {ISSUE_FIELDS} labels {{ nodes {{ name }} }} }} }}
}}
"""

ISSUE_CREATE_MUTATION = """
mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) { success issue { id identifier } }
}
"""

ISSUE_UPDATE_MUTATION = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) { success issue { id identifier } }
}
"""

ISSUE_ARCHIVE_MUTATION = """
mutation IssueArchive($id: String!) {
  issueArchive(id: $id) { success }
}
"""

FILE_UPLOAD_MUTATION = """
mutation FileUpload($contentType: String!, $filename: String!, $size: Int!) {
  fileUpload(contentType: $contentType, filename: $filename, size: $size) {
    success
    uploadFile { uploadUrl assetUrl headers { key value } }
  }
}
"""

ATTACHMENT_CREATE_MUTATION = """
mutation AttachmentCreate($input: AttachmentCreateInput!) {
  attachmentCreate(input: $input) { success attachment { id } }
}
"""


def _entity_ref(data: Any) -> EntityRef | None:
    if not isinstance(data, dict):
        return None
    return EntityRef(id=data.get("id"), name=data.get("name"))


def parse_issue(data: dict[str, Any]) -> RemoteIssue:
    """Convert a Linear issue node into a RemoteIssue."""
    labels = (data.get("labels") or {}).get("nodes") or []
    return RemoteIssue(
        id=data.get("id") or "",
        identifier=data.get("identifier") or "",
        title=data.get("title") or "",
        description=data.get("description") or "",
        team=_entity_ref(data.get("team")),
        project=_entity_ref(data.get("project")),
        labels=[node["name"] for node in labels if isinstance(node, dict) and node.get("name")],
    )


class LinearGateway(RemoteGatewayPort):
    """
    Linear implementation of the RemoteGatewayPort.

    Example:
        >>> gateway = LinearGateway.from_config(config.linear)
        >>> ref = gateway.create_issue("Login Flow", "draft notes", team_id="team-1")
    """

    def __init__(self, client: LinearApiClient):
        self.client = client
        self.logger = logging.getLogger("LinearGateway")

    @classmethod
    def from_config(cls, config: LinearConfig) -> LinearGateway:
        return cls(
            LinearApiClient(
                api_key=config.api_key,
                oauth_token=config.oauth_token,
                api_url=config.api_url,
            )
        )

    @property
    def name(self) -> str:
        return "Linear"

    # -------------------------------------------------------------------------
    # Teams and labels
    # -------------------------------------------------------------------------

    def get_first_team_id(self) -> str | None:
        data = self.client.query(TEAMS_QUERY)
        nodes = (data.get("teams") or {}).get("nodes") or []
        return nodes[0].get("id") if nodes else None

    def resolve_label_id(self, team_id: str, label_name: str) -> str | None:
        data = self.client.query(TEAM_LABELS_QUERY, {"id": team_id})
        nodes = ((data.get("team") or {}).get("labels") or {}).get("nodes") or []
        for node in nodes:
            if node.get("name") == label_name:
                return node.get("id")
        return None

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------

    def create_issue(
        self,
        title: str,
        description: str,
        team_id: str,
        project_id: str | None = None,
        label_ids: list[str] | None = None,
    ) -> IssueRef:
        issue_input: dict[str, Any] = {
            "title": title,
            "teamId": team_id,
            "description": description,
        }
        if project_id:
            issue_input["projectId"] = project_id
        if label_ids:
            issue_input["labelIds"] = label_ids

        data = self.client.mutate(ISSUE_CREATE_MUTATION, {"input": issue_input})
        issue = (data.get("issueCreate") or {}).get("issue") or {}
        if not issue.get("id") or not issue.get("identifier"):
            raise TrackerError("issue_create_failed")
        self.logger.debug(f"Created {issue['identifier']}")
        return IssueRef(id=issue["id"], identifier=issue["identifier"])

    def update_issue(self, issue_id: str, title: str, description: str) -> IssueRef:
        data = self.client.mutate(
            ISSUE_UPDATE_MUTATION,
            {"id": issue_id, "input": {"title": title, "description": description}},
        )
        issue = (data.get("issueUpdate") or {}).get("issue") or {}
        if not issue.get("id") or not issue.get("identifier"):
            raise TrackerError("issue_update_failed", issue_key=issue_id)
        return IssueRef(id=issue["id"], identifier=issue["identifier"])

    def get_issue(self, issue_id: str) -> RemoteIssue:
        data = self.client.query(ISSUE_QUERY, {"id": issue_id})
        issue = data.get("issue")
        if not isinstance(issue, dict) or not issue.get("id"):
            raise ResourceNotFoundError("issue_not_found", issue_key=issue_id)
        return parse_issue(issue)

    def list_issues(self, limit: int) -> list[RemoteIssue]:
        data = self.client.query(ISSUES_QUERY, {"first": limit})
        nodes = (data.get("issues") or {}).get("nodes") or []
        return [parse_issue(node) for node in nodes if isinstance(node, dict)]

    def archive_issue(self, issue_id: str) -> bool:
        data = self.client.mutate(ISSUE_ARCHIVE_MUTATION, {"id": issue_id})
        if not (data.get("issueArchive") or {}).get("success"):
            raise TrackerError("issue_archive_failed", issue_key=issue_id)
        return True

    # -------------------------------------------------------------------------
    # Attachments
    # -------------------------------------------------------------------------

    def request_upload_slot(self, content_type: str, filename: str, size: int) -> UploadSlot:
        data = self.client.mutate(
            FILE_UPLOAD_MUTATION,
            {"contentType": content_type, "filename": filename, "size": size},
        )
        upload = data.get("fileUpload") or {}
        upload_file = upload.get("uploadFile") or {}
        if not upload.get("success") or not upload_file.get("uploadUrl") or not upload_file.get("assetUrl"):
            raise TrackerError("file_upload_failed")

        headers = {
            h["key"]: h["value"]
            for h in upload_file.get("headers") or []
            if isinstance(h, dict) and h.get("key") and h.get("value") is not None
        }
        return UploadSlot(
            upload_url=upload_file["uploadUrl"],
            asset_url=upload_file["assetUrl"],
            headers=headers,
        )

    def upload_asset(self, slot: UploadSlot, content: bytes, content_type: str) -> None:
        headers = dict(slot.headers)
        headers.setdefault("Content-Type", content_type)
        self.client.put_file(slot.upload_url, content, headers)

    def create_attachment(self, issue_id: str, title: str, asset_url: str) -> str:
        data = self.client.mutate(
            ATTACHMENT_CREATE_MUTATION,
            {"input": {"issueId": issue_id, "title": title, "url": asset_url}},
        )
        attachment = (data.get("attachmentCreate") or {}).get("attachment") or {}
        if not attachment.get("id"):
            raise TrackerError("attachment_create_failed", issue_key=issue_id)
        return attachment["id"]
