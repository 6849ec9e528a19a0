"""
Mailbox Operations

Reads and mutates the signed-in user's mailbox via Microsoft Graph API:
inbox messages, mail folders, moves and read flags.
"""

import logging
from typing import List, Optional

from ..core.exceptions import ItemNotFoundError
from ..inbox.models import EMAIL_FIELDS, Email, Folder
from .client import GraphAPIClient


logger = logging.getLogger(__name__)


def escape_odata_string(value: str) -> str:
    """Escape a value for use inside a quoted OData string literal."""
    return value.replace("'", "''")


class MailboxClient:
    """
    Mailbox operations for the signed-in user (/me).

    Usage:
        graph = GraphAPIClient(token_provider)
        mailbox = MailboxClient(graph)

        for email in mailbox.get_unread_emails(limit=20):
            ...
    """

    def __init__(self, client: GraphAPIClient, logger: Optional[logging.Logger] = None):
        """
        Initialize mailbox client.

        Args:
            client: Authenticated GraphAPIClient
            logger: Logger to use (default: module logger)
        """
        self.client = client
        self.logger = logger or logging.getLogger(__name__)
        self._inbox_id: Optional[str] = None

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    def get_unread_emails(self, limit: int = 50) -> List[Email]:
        """
        Get unread inbox messages, most recent first.

        Args:
            limit: Maximum number of messages

        Returns:
            List of Email snapshots
        """
        params = {
            "$filter": "isRead eq false",
            "$select": EMAIL_FIELDS,
            "$top": limit,
            "$orderby": "receivedDateTime desc",
        }
        try:
            response = self.client.get("/me/mailFolders/inbox/messages", params=params)
        except Exception as e:
            self.logger.error(f"Error retrieving emails from inbox: {e}")
            raise

        return [Email.from_graph(msg) for msg in response.get("value", [])]

    def get_all_inbox_emails(self, limit: int = 20) -> List[Email]:
        """
        Get inbox messages (read and unread), most recent first.

        Args:
            limit: Maximum number of messages

        Returns:
            List of Email snapshots
        """
        params = {
            "$select": EMAIL_FIELDS,
            "$top": limit,
            "$orderby": "receivedDateTime desc",
        }
        try:
            response = self.client.get("/me/mailFolders/inbox/messages", params=params)
        except Exception as e:
            self.logger.error(f"Error retrieving all emails from inbox: {e}")
            raise

        return [Email.from_graph(msg) for msg in response.get("value", [])]

    def email_exists(self, email_id: str) -> bool:
        """
        Check whether a message still exists.

        Returns:
            False if Graph reports ErrorItemNotFound; other errors propagate
        """
        try:
            self.client.get(f"/me/messages/{email_id}", params={"$select": "id"})
            return True
        except ItemNotFoundError:
            return False

    def move_email(self, email_id: str, folder_id: str) -> bool:
        """
        Move a message to another folder.

        Args:
            email_id: Graph message ID
            folder_id: Destination folder ID

        Returns:
            True if moved, False if the message no longer exists
        """
        try:
            self.client.post(f"/me/messages/{email_id}/move", json={"destinationId": folder_id})
            self.logger.debug(f"Email moved: {email_id[-8:]}")
            return True
        except ItemNotFoundError:
            self.logger.warning(f"Email not found: {email_id[-8:]}")
            return False
        except Exception:
            self.logger.error(f"Move error {email_id[-8:]}")
            raise

    def mark_as_read(self, email_id: str) -> bool:
        """
        Mark a message as read.

        Returns:
            True if updated, False if the message no longer exists
        """
        try:
            self.client.patch(f"/me/messages/{email_id}", json={"isRead": True})
            self.logger.debug(f"Email marked as read: {email_id[-8:]}")
            return True
        except ItemNotFoundError:
            self.logger.warning(f"Email not found: {email_id[-8:]}")
            return False
        except Exception:
            self.logger.error(f"Mark as read error {email_id[-8:]}")
            raise

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def get_folders(self) -> List[Folder]:
        """List top-level mail folders."""
        try:
            response = self.client.get("/me/mailFolders", params={"$select": "id,displayName"})
        except Exception as e:
            self.logger.error(f"Error retrieving folders: {e}")
            raise
        return [Folder.from_graph(f) for f in response.get("value", [])]

    def get_inbox_id(self) -> str:
        """ID of the inbox folder (looked up once)."""
        if self._inbox_id is None:
            try:
                inbox = self.client.get("/me/mailFolders/inbox", params={"$select": "id"})
            except Exception as e:
                self.logger.error(f"Error retrieving inbox: {e}")
                raise
            self._inbox_id = inbox["id"]
        return self._inbox_id

    def get_inbox_subfolders(self) -> List[Folder]:
        """List immediate child folders of the inbox."""
        try:
            inbox_id = self.get_inbox_id()
            response = self.client.get(
                f"/me/mailFolders/{inbox_id}/childFolders", params={"$select": "id,displayName"}
            )
        except Exception as e:
            self.logger.error(f"Error retrieving inbox subfolders: {e}")
            raise

        subfolders = [Folder.from_graph(f) for f in response.get("value", [])]
        self.logger.debug(f"Inbox subfolders found: {', '.join(f.display_name for f in subfolders)}")
        return subfolders

    def find_folders_by_name(self, name: str) -> List[Folder]:
        """Top-level folders whose display name equals name exactly."""
        response = self.client.get(
            "/me/mailFolders",
            params={
                "$filter": f"displayName eq '{escape_odata_string(name)}'",
                "$select": "id,displayName",
            },
        )
        return [Folder.from_graph(f) for f in response.get("value", [])]

    def create_folder(self, name: str) -> str:
        """
        Create an inbox subfolder, unless a folder with this exact name exists.

        Args:
            name: Display name (used verbatim)

        Returns:
            ID of the existing or newly created folder
        """
        try:
            existing = self.find_folders_by_name(name)
            if existing:
                return existing[0].id

            inbox_id = self.get_inbox_id()
            folder = self.client.post(f"/me/mailFolders/{inbox_id}/childFolders", json={"displayName": name})
            return folder["id"]
        except Exception as e:
            self.logger.error(f"Error creating or retrieving folder '{name}': {e}")
            raise

    def debug_list_all_folders(self) -> None:
        """Log root folders and inbox subfolders at debug level."""
        try:
            self.logger.debug("Listing all folders...")

            self.logger.debug("Root folders:")
            for folder in self.get_folders():
                self.logger.debug(f"  - {folder.display_name} (ID: {folder.id})")

            self.logger.debug("Inbox subfolders:")
            for folder in self.get_inbox_subfolders():
                self.logger.debug(f"  - {folder.display_name} (ID: {folder.id})")
        except Exception as e:
            self.logger.error(f"Error during folder debug: {e}")
