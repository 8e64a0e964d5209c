"""Tests for address validation, domain exceptions and the Mailbox facade."""

import pytest

from inboxview.application.mailbox.mailbox import Mailbox
from inboxview.application.mailbox.scheduler import RefreshScheduler
from inboxview.application.mailbox.store import MailboxStore
from inboxview.application.use_cases.refresh_mailbox import RefreshMailboxUseCase
from inboxview.domain.addresses import normalize_address
from inboxview.domain.entities.criteria import FilterCriteria, ReadState
from inboxview.domain.exceptions import (
    InboxViewError,
    InvalidAddress,
    InvalidFilter,
    MailNotFound,
    NormalizationError,
    SourceUnavailable,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("user@example.com", "user@example.com"),
        ("  User@Example.COM ", "user@example.com"),
        ("first.last+tag@sub.example.org", "first.last+tag@sub.example.org"),
    ],
)
def test_normalize_address(raw, expected) -> None:
    assert normalize_address(raw) == expected


@pytest.mark.parametrize("raw", ["user@localhost", "no-at-sign.com", "two words@example.com", "@example.com"])
def test_normalize_address_rejects_malformed(raw) -> None:
    with pytest.raises(InvalidAddress) as exc_info:
        normalize_address(raw)
    assert exc_info.value.message == f"Invalid email address: {raw}"


@pytest.mark.parametrize("raw", [None, "", "   "])
def test_missing_address(raw) -> None:
    with pytest.raises(InvalidAddress) as exc_info:
        normalize_address(raw)
    assert exc_info.value.message in ("Target email is required", f"Invalid email address: {raw}")


def test_empty_address_message() -> None:
    with pytest.raises(InvalidAddress) as exc_info:
        normalize_address("")
    assert exc_info.value.message == "Target email is required"


def test_base_error_defaults_kind_to_class_name() -> None:
    exc = InboxViewError("Something failed")
    assert exc.kind == "InboxViewError"
    assert exc.details == {}
    assert exc.to_dict() == {"error": "Something failed", "kind": "InboxViewError", "details": {}}


def test_error_kinds_are_distinguishable() -> None:
    kinds = {
        InvalidAddress("x").kind,
        SourceUnavailable("down").kind,
        NormalizationError("bad").kind,
        InvalidFilter("category", "spam").kind,
        MailNotFound("m1").kind,
    }
    assert len(kinds) == 5


def test_source_unavailable_details() -> None:
    exc = SourceUnavailable("down", provider="gmail", address="me@example.com")
    assert exc.to_dict()["details"] == {"provider": "gmail", "address": "me@example.com"}


# ============================================================================
# Mailbox facade
# ============================================================================


@pytest.fixture
def mailbox(fake_source, normalize, two_mails) -> Mailbox:
    store = MailboxStore("me@example.com")
    store.merge(two_mails)
    scheduler = RefreshScheduler(store, RefreshMailboxUseCase(fake_source, normalize))
    return Mailbox(address="me@example.com", store=store, scheduler=scheduler)


def test_mailbox_messages_with_criteria(mailbox, now) -> None:
    assert [m.id for m in mailbox.messages()] == ["m1", "m2"]
    unread = mailbox.messages(FilterCriteria(read_state=ReadState.UNREAD), now=now)
    assert [m.id for m in unread] == ["m1"]


def test_mailbox_mark_read_returns_updated_mail(mailbox, now) -> None:
    assert mailbox.mark_read("m1").is_read is True
    assert mailbox.stats(now=now).unread == 0


def test_mailbox_unknown_id(mailbox) -> None:
    with pytest.raises(MailNotFound):
        mailbox.get("missing")
    with pytest.raises(MailNotFound):
        mailbox.mark_read("missing")
