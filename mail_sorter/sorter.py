"""
Inbox sorting run

Fetches inbox messages, classifies each one and applies the decision.
Emails are processed one after another; a failure on one email never stops
the run.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .actions.applier import ApplyOutcome, DecisionApplier
from .ai.classifier import EmailClassifier
from .core.config import AppConfig
from .graph.mail import MailboxClient
from .inbox.body import email_to_text
from .inbox.models import Email


logger = logging.getLogger(__name__)


UNKNOWN_SENDER = "Unknown sender"
NO_SUBJECT = "No subject"


@dataclass
class RunStats:
    """Counters for one sorting run."""

    fetched: int = 0
    processed: int = 0
    failed: int = 0
    outcomes: Dict[str, int] = field(default_factory=dict)
    failed_ids: List[str] = field(default_factory=list)

    def record(self, outcome: str) -> None:
        self.processed += 1
        self.outcomes[outcome] = self.outcomes.get(outcome, 0) + 1


class InboxSorter:
    """
    Runs one pass over the inbox.

    Usage:
        sorter = InboxSorter(mailbox, classifier, applier, config.app)
        stats = sorter.run()
    """

    def __init__(
        self,
        mailbox: MailboxClient,
        classifier: EmailClassifier,
        applier: DecisionApplier,
        app_config: AppConfig,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize sorter.

        Args:
            mailbox: MailboxClient for fetching messages
            classifier: EmailClassifier producing decisions
            applier: DecisionApplier performing mailbox mutations
            app_config: Runtime settings (email_limit, sort_mode, dry_run)
            logger: Logger to use (default: module logger)
        """
        self.mailbox = mailbox
        self.classifier = classifier
        self.applier = applier
        self.app_config = app_config
        self.logger = logger or logging.getLogger(__name__)

    def fetch(self) -> List[Email]:
        """Unread emails, or every inbox email in sort mode."""
        limit = self.app_config.email_limit
        if self.app_config.sort_mode:
            self.logger.info(f"Sort mode: fetching the {limit} most recent inbox emails")
            return self.mailbox.get_all_inbox_emails(limit=limit)
        return self.mailbox.get_unread_emails(limit=limit)

    def run(self) -> RunStats:
        """
        Classify and sort the fetched emails.

        Returns:
            RunStats for this run
        """
        stats = RunStats()

        if self.logger.isEnabledFor(logging.DEBUG):
            self.mailbox.debug_list_all_folders()

        emails = self.fetch()
        stats.fetched = len(emails)

        if not emails:
            self.logger.info("No emails to process")
            return stats

        self.logger.info(f"Processing {len(emails)} email(s)")
        if self.app_config.dry_run:
            self.logger.info("DRY RUN: decisions are logged, the mailbox is not modified")

        for email in emails:
            try:
                outcome = self.process(email)
                stats.record(outcome)
            except Exception as e:
                self.logger.error(f"Error processing {email.short_id}: {e}")
                stats.failed += 1
                stats.failed_ids.append(email.id)

        self._log_summary(stats)
        return stats

    def process(self, email: Email) -> str:
        """
        Classify one email and apply the decision.

        Returns:
            Outcome name ("dry_run" when nothing was applied)
        """
        subject = email.subject or NO_SUBJECT
        self.logger.info(f"[{email.short_id}] {subject}")

        content = email_to_text(email)
        sender = email.sender_address or email.sender_name or UNKNOWN_SENDER
        decision = self.classifier.classify(sender=sender, subject=subject, content=content)

        self.logger.info(
            f"  -> {decision.category} / {decision.action} "
            f"(folder: {decision.folder}, confidence: {decision.confidence:.2f})"
        )

        if self.app_config.dry_run:
            return "dry_run"

        outcome: ApplyOutcome = self.applier.apply(decision, email)
        return outcome.value

    def _log_summary(self, stats: RunStats) -> None:
        self.logger.info("=" * 60)
        self.logger.info(
            f"Run complete: {stats.processed} processed, {stats.failed} failed (of {stats.fetched} fetched)"
        )
        for name, count in sorted(stats.outcomes.items()):
            self.logger.info(f"  {name}: {count}")
        if self.applier.resolver.cached_names():
            self.logger.debug(f"Folders resolved: {', '.join(self.applier.resolver.cached_names())}")
        self.logger.info("=" * 60)
