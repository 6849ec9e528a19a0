"""
Mailbox snapshots built from Graph API message and folder payloads.

Snapshots are fetched once and never mutated locally; state changes happen
server-side through MailboxClient.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


# $select list used when fetching messages
EMAIL_FIELDS = "id,subject,from,bodyPreview,body,isRead,parentFolderId"


@dataclass(frozen=True)
class EmailBody:
    """Message body as returned by Graph (contentType is 'html' or 'text')."""

    content_type: str = "text"
    content: str = ""

    @property
    def is_html(self) -> bool:
        return (self.content_type or "").lower() == "html"


@dataclass(frozen=True)
class Email:
    """Immutable snapshot of an inbox message."""

    id: str
    subject: str = ""
    sender_address: str = ""
    sender_name: str = ""
    preview: str = ""
    body: EmailBody = field(default_factory=EmailBody)
    is_read: bool = False
    parent_folder_id: str = ""

    @classmethod
    def from_graph(cls, msg: Dict[str, Any]) -> "Email":
        """
        Build a snapshot from a Graph message resource.

        Args:
            msg: Message dict with the fields listed in EMAIL_FIELDS

        Returns:
            Email instance (missing fields become empty values)
        """
        from_data = (msg.get("from") or {}).get("emailAddress") or {}
        body_data = msg.get("body") or {}

        return cls(
            id=msg.get("id", ""),
            subject=msg.get("subject") or "",
            sender_address=from_data.get("address") or "",
            sender_name=from_data.get("name") or "",
            preview=msg.get("bodyPreview") or "",
            body=EmailBody(
                content_type=body_data.get("contentType") or "text",
                content=body_data.get("content") or "",
            ),
            is_read=bool(msg.get("isRead", False)),
            parent_folder_id=msg.get("parentFolderId") or "",
        )

    @property
    def short_id(self) -> str:
        """Last 8 characters of the id, used in log lines."""
        return self.id[-8:]


@dataclass(frozen=True)
class Folder:
    """Mail folder (ids are opaque strings assigned by Graph)."""

    id: str
    display_name: str

    @classmethod
    def from_graph(cls, data: Dict[str, Any]) -> "Folder":
        return cls(id=data.get("id", ""), display_name=data.get("displayName") or "")

    @property
    def key(self) -> str:
        """Normalized name used for matching (trimmed, lower-cased)."""
        return normalize_folder_name(self.display_name)


def normalize_folder_name(name: str) -> str:
    """Trim and lower-case a folder name."""
    return (name or "").strip().lower()
