"""
Folder resolution

Maps a human folder name (e.g. "Orders") to a Graph folder ID, creating
the folder under the inbox when it does not exist yet. Results are cached
for the lifetime of the process.
"""

import logging
from typing import Dict, List, Optional

from ..core.exceptions import FolderResolutionError
from ..inbox.models import Folder, normalize_folder_name
from .mail import MailboxClient


logger = logging.getLogger(__name__)


class FolderResolver:
    """
    Resolves folder names to IDs with a process-lifetime cache.

    Lookup order (first hit wins):
    1. Cache (trimmed, lower-cased name)
    2. Inbox subfolders
    3. Top-level folders
    4. Create as inbox subfolder (re-checking for an exact-name match first)

    If any lookup or creation step fails, an inbox subfolder whose name
    contains the first 4 characters of the requested name is used instead;
    when none matches the original error is re-raised.

    Check-then-create is not atomic against other clients creating the
    same folder; duplicates are tolerated.
    """

    FALLBACK_PREFIX_LENGTH = 4

    def __init__(self, mailbox: MailboxClient, logger: Optional[logging.Logger] = None):
        """
        Initialize folder resolver.

        Args:
            mailbox: MailboxClient used for listing and creating folders
            logger: Logger to use (default: module logger)
        """
        self.mailbox = mailbox
        self.logger = logger or logging.getLogger(__name__)
        self._cache: Dict[str, str] = {}

    def ensure_folder(self, name: str) -> str:
        """
        Get the ID of a folder, creating it if needed.

        Args:
            name: Folder display name

        Returns:
            Folder ID

        Raises:
            FolderResolutionError: If the name is blank
            Exception: The original lookup/creation error when no fallback folder matches
        """
        key = normalize_folder_name(name)
        if not key:
            # An empty prefix would match every folder in the fallback
            raise FolderResolutionError(f"Cannot resolve a blank folder name: {name!r}")

        if key in self._cache:
            return self._cache[key]

        try:
            folder = self._find(self.mailbox.get_inbox_subfolders(), key)
            if folder:
                self.logger.debug(f"Folder found: {name}")
                return self._remember(key, folder.id)

            folder = self._find(self.mailbox.get_folders(), key)
            if folder:
                self.logger.debug(f"Folder found (root): {name}")
                return self._remember(key, folder.id)

            folder_id = self.mailbox.create_folder(name)
            self.logger.debug(f"Folder created: {name}")
            return self._remember(key, folder_id)

        except Exception:
            self.logger.warning(f"Issue with folder {name}, attempting fallback")
            folder_id = self._fallback(name, key)
            if folder_id is None:
                raise
            return folder_id

    def _fallback(self, name: str, key: str) -> Optional[str]:
        """Inbox subfolder containing the first characters of key, if any."""
        prefix = key[: self.FALLBACK_PREFIX_LENGTH]
        try:
            subfolders = self.mailbox.get_inbox_subfolders()
        except Exception as e:
            self.logger.warning(f"Fallback lookup for {name} failed: {e}")
            return None

        for folder in subfolders:
            if prefix in folder.key:
                self.logger.debug(f"Using folder: {folder.display_name}")
                return self._remember(key, folder.id)

        self.logger.warning(f"No available target folder for {name}")
        return None

    @staticmethod
    def _find(folders: List[Folder], key: str) -> Optional[Folder]:
        for folder in folders:
            if folder.key == key:
                return folder
        return None

    def _remember(self, key: str, folder_id: str) -> str:
        self._cache[key] = folder_id
        return folder_id

    def cached_names(self) -> List[str]:
        """Normalized names currently cached."""
        return sorted(self._cache)

    def clear(self) -> None:
        """Forget all cached IDs."""
        self._cache.clear()
