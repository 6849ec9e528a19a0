"""
Tests for InboxSorter runs.
"""

import pytest
from unittest.mock import Mock

from mail_sorter.actions.applier import ApplyOutcome
from mail_sorter.ai.classifier import Decision
from mail_sorter.core.config import AppConfig
from mail_sorter.core.exceptions import ClassifierResponseError
from mail_sorter.sorter import InboxSorter
from tests.factories import GraphAPITestFactory


ORDERS = Decision(category="Orders", action="move", folder="Orders", confidence=0.9)


@pytest.fixture
def emails():
    return [
        GraphAPITestFactory.create_email(message_id="msg-00000001", subject="Commande expédiée"),
        GraphAPITestFactory.create_email(message_id="msg-00000002", subject="Newsletter"),
        GraphAPITestFactory.create_email(message_id="msg-00000003", subject="Facture"),
    ]


@pytest.fixture
def mailbox(emails):
    mock = Mock()
    mock.get_unread_emails.return_value = emails
    mock.get_all_inbox_emails.return_value = emails[:1]
    return mock


@pytest.fixture
def classifier():
    mock = Mock()
    mock.classify.return_value = ORDERS
    return mock


@pytest.fixture
def applier():
    mock = Mock()
    mock.apply.return_value = ApplyOutcome.MOVED
    mock.resolver.cached_names.return_value = ["orders"]
    return mock


def make_sorter(mailbox, classifier, applier, **app_settings):
    return InboxSorter(mailbox, classifier, applier, AppConfig(**app_settings))


class TestRun:
    def test_unread_emails_are_classified_and_applied(self, mailbox, classifier, applier, emails):
        stats = make_sorter(mailbox, classifier, applier, email_limit=10).run()

        mailbox.get_unread_emails.assert_called_once_with(limit=10)
        mailbox.get_all_inbox_emails.assert_not_called()
        assert classifier.classify.call_count == 3
        assert applier.apply.call_count == 3
        assert stats.fetched == 3
        assert stats.processed == 3
        assert stats.failed == 0
        assert stats.outcomes == {"moved": 3}

    def test_classifier_receives_sender_subject_and_text(self, mailbox, classifier, applier, emails):
        mailbox.get_unread_emails.return_value = [
            GraphAPITestFactory.create_email(
                sender_email="noreply@github.com", subject="New PR", content="<p>Review requested</p>"
            )
        ]

        make_sorter(mailbox, classifier, applier).run()

        classifier.classify.assert_called_once_with(
            sender="noreply@github.com", subject="New PR", content="Review requested"
        )

    def test_sort_mode_fetches_all_inbox_emails(self, mailbox, classifier, applier):
        stats = make_sorter(mailbox, classifier, applier, sort_mode=True, email_limit=5).run()

        mailbox.get_all_inbox_emails.assert_called_once_with(limit=5)
        mailbox.get_unread_emails.assert_not_called()
        assert stats.fetched == 1

    def test_empty_inbox(self, mailbox, classifier, applier):
        mailbox.get_unread_emails.return_value = []

        stats = make_sorter(mailbox, classifier, applier).run()

        assert stats.fetched == 0
        assert stats.processed == 0
        classifier.classify.assert_not_called()

    def test_dry_run_never_applies(self, mailbox, classifier, applier):
        stats = make_sorter(mailbox, classifier, applier, dry_run=True).run()

        assert classifier.classify.call_count == 3
        applier.apply.assert_not_called()
        assert stats.outcomes == {"dry_run": 3}


class TestFailureIsolation:
    def test_failing_email_does_not_stop_the_run(self, mailbox, classifier, applier, emails):
        classifier.classify.side_effect = [ORDERS, ClassifierResponseError("Invalid LLM JSON response"), ORDERS]

        stats = make_sorter(mailbox, classifier, applier).run()

        assert stats.processed == 2
        assert stats.failed == 1
        assert stats.failed_ids == ["msg-00000002"]
        assert applier.apply.call_count == 2

    def test_apply_errors_are_counted(self, mailbox, classifier, applier):
        applier.apply.side_effect = [ApplyOutcome.MOVED, RuntimeError("boom"), ApplyOutcome.MISSING]

        stats = make_sorter(mailbox, classifier, applier).run()

        assert stats.failed == 1
        assert stats.outcomes == {"moved": 1, "missing": 1}

    def test_missing_sender_and_subject_use_placeholders(self, mailbox, classifier, applier):
        mailbox.get_unread_emails.return_value = [
            GraphAPITestFactory.create_email(sender_email="", sender_name="", subject="", content="<p>Hello</p>")
        ]

        make_sorter(mailbox, classifier, applier).run()

        classifier.classify.assert_called_once_with(sender="Unknown sender", subject="No subject", content="Hello")
