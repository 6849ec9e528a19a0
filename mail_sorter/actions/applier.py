"""
Decision applier

Turns a classifier Decision into mailbox mutations (move, mark read, archive).
"""

import logging
from enum import Enum
from typing import Optional

from ..ai.classifier import Decision
from ..core.exceptions import ItemNotFoundError
from ..graph.folders import FolderResolver
from ..graph.mail import MailboxClient
from ..inbox.models import Email


logger = logging.getLogger(__name__)


ARCHIVE_FOLDER = "Archive"


class ApplyOutcome(str, Enum):
    """Result of applying one decision."""

    MOVED = "moved"
    MARKED_READ = "marked_read"
    ARCHIVED = "archived"
    IGNORED = "ignored"
    MISSING = "missing"


class DecisionApplier:
    """
    Applies classifier decisions to the mailbox.

    Usage:
        applier = DecisionApplier(mailbox, FolderResolver(mailbox))
        outcome = applier.apply(decision, email)
    """

    def __init__(
        self,
        mailbox: MailboxClient,
        resolver: FolderResolver,
        logger: Optional[logging.Logger] = None,
    ):
        self.mailbox = mailbox
        self.resolver = resolver
        self.logger = logger or logging.getLogger(__name__)

    def apply(self, decision: Decision, email: Email) -> ApplyOutcome:
        """
        Apply a decision to one email.

        Args:
            decision: Validated classifier decision
            email: Email the decision was made for

        Returns:
            ApplyOutcome describing what happened

        Raises:
            Exception: Folder resolution or Graph errors other than not-found
        """
        if not self.mailbox.email_exists(email.id):
            self.logger.warning(f"Email not found: {email.short_id}")
            return ApplyOutcome.MISSING

        try:
            if decision.action == "move" and decision.folder:
                folder_id = self.resolver.ensure_folder(decision.folder)
                return self._move(email, folder_id, decision.folder, ApplyOutcome.MOVED)

            if decision.action == "mark_read":
                if not self.mailbox.mark_as_read(email.id):
                    return ApplyOutcome.MISSING
                self.logger.debug(f"Email marked as read: {email.short_id}")
                return ApplyOutcome.MARKED_READ

            if decision.action == "archive":
                folder_id = self.resolver.ensure_folder(ARCHIVE_FOLDER)
                return self._move(email, folder_id, ARCHIVE_FOLDER, ApplyOutcome.ARCHIVED)

        except ItemNotFoundError:
            self.logger.warning(f"Email not found: {email.short_id}")
            return ApplyOutcome.MISSING

        return ApplyOutcome.IGNORED

    def _move(self, email: Email, folder_id: str, folder_name: str, outcome: ApplyOutcome) -> ApplyOutcome:
        if folder_id == email.parent_folder_id:
            self.logger.warning(f"Email already in {folder_name}: {email.short_id}")
        else:
            self.logger.debug(f"Moving {email.short_id} to {folder_name}")

        if not self.mailbox.move_email(email.id, folder_id):
            return ApplyOutcome.MISSING
        return outcome
