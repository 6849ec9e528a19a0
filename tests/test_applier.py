"""
Tests for DecisionApplier.
"""

import logging

import pytest
from unittest.mock import Mock

from mail_sorter.actions.applier import ApplyOutcome, DecisionApplier
from mail_sorter.ai.classifier import Decision
from mail_sorter.core.exceptions import GraphAPIError, ItemNotFoundError
from tests.factories import GraphAPITestFactory


@pytest.fixture
def mailbox():
    mock = Mock()
    mock.email_exists.return_value = True
    mock.move_email.return_value = True
    mock.mark_as_read.return_value = True
    return mock


@pytest.fixture
def resolver():
    mock = Mock()
    mock.ensure_folder.side_effect = lambda name: f"id-{name}"
    return mock


@pytest.fixture
def applier(mailbox, resolver):
    return DecisionApplier(mailbox, resolver)


@pytest.fixture
def email():
    return GraphAPITestFactory.create_email(message_id="AAMkAG-message-00000001", parent_folder_id="inbox-id")


def decision(action="move", folder="Orders", category="Orders"):
    return Decision(category=category, action=action, folder=folder, confidence=0.9)


class TestApply:
    """Mutations per action."""

    def test_move_resolves_folder_and_moves(self, applier, mailbox, resolver, email):
        outcome = applier.apply(decision("move", "Orders"), email)

        assert outcome == ApplyOutcome.MOVED
        resolver.ensure_folder.assert_called_once_with("Orders")
        mailbox.move_email.assert_called_once_with(email.id, "id-Orders")

    def test_mark_read(self, applier, mailbox, resolver, email):
        outcome = applier.apply(decision("mark_read"), email)

        assert outcome == ApplyOutcome.MARKED_READ
        mailbox.mark_as_read.assert_called_once_with(email.id)
        resolver.ensure_folder.assert_not_called()
        mailbox.move_email.assert_not_called()

    def test_archive_moves_to_archive_folder(self, applier, mailbox, resolver, email):
        outcome = applier.apply(decision("archive"), email)

        assert outcome == ApplyOutcome.ARCHIVED
        resolver.ensure_folder.assert_called_once_with("Archive")
        mailbox.move_email.assert_called_once_with(email.id, "id-Archive")

    def test_ignore_does_nothing(self, applier, mailbox, resolver, email):
        outcome = applier.apply(decision("ignore"), email)

        assert outcome == ApplyOutcome.IGNORED
        mailbox.move_email.assert_not_called()
        mailbox.mark_as_read.assert_not_called()
        resolver.ensure_folder.assert_not_called()

    def test_move_without_folder_does_nothing(self, applier, mailbox, resolver, email):
        outcome = applier.apply(decision("move", folder=None), email)

        assert outcome == ApplyOutcome.IGNORED
        resolver.ensure_folder.assert_not_called()
        mailbox.move_email.assert_not_called()


class TestSameFolder:
    """Moving into the folder the email is already in."""

    def test_same_folder_warns_and_still_moves_once(self, applier, mailbox, resolver, email, caplog):
        resolver.ensure_folder.side_effect = None
        resolver.ensure_folder.return_value = "inbox-id"

        with caplog.at_level(logging.WARNING, logger="mail_sorter.actions.applier"):
            outcome = applier.apply(decision("move", "Orders"), email)

        assert outcome == ApplyOutcome.MOVED
        mailbox.move_email.assert_called_once_with(email.id, "inbox-id")
        assert "already in Orders" in caplog.text

    def test_different_folder_does_not_warn(self, applier, email, caplog):
        with caplog.at_level(logging.WARNING, logger="mail_sorter.actions.applier"):
            applier.apply(decision("move", "Orders"), email)

        assert "already in" not in caplog.text


class TestMissingEmail:
    """Deleted or moved-away messages."""

    def test_missing_email_is_skipped(self, applier, mailbox, resolver, email):
        mailbox.email_exists.return_value = False

        outcome = applier.apply(decision("move", "Orders"), email)

        assert outcome == ApplyOutcome.MISSING
        resolver.ensure_folder.assert_not_called()
        mailbox.move_email.assert_not_called()

    def test_move_reporting_not_found_is_missing(self, applier, mailbox, email):
        mailbox.move_email.return_value = False

        assert applier.apply(decision("move", "Orders"), email) == ApplyOutcome.MISSING

    def test_mark_read_reporting_not_found_is_missing(self, applier, mailbox, email):
        mailbox.mark_as_read.return_value = False

        assert applier.apply(decision("mark_read"), email) == ApplyOutcome.MISSING

    def test_item_not_found_error_is_swallowed(self, applier, mailbox, email):
        mailbox.move_email.side_effect = ItemNotFoundError("Not found", status_code=404, error_code="ErrorItemNotFound")

        assert applier.apply(decision("archive"), email) == ApplyOutcome.MISSING

    def test_other_errors_propagate(self, applier, mailbox, email):
        mailbox.move_email.side_effect = GraphAPIError("Forbidden", status_code=403)

        with pytest.raises(GraphAPIError):
            applier.apply(decision("move", "Orders"), email)

    def test_folder_errors_propagate(self, applier, resolver, email):
        resolver.ensure_folder.side_effect = GraphAPIError("Forbidden", status_code=403)

        with pytest.raises(GraphAPIError):
            applier.apply(decision("move", "Orders"), email)
