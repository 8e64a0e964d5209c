"""Tests for the Gmail and RFC 822 normalizers."""

import base64
from datetime import datetime, timezone
from email.message import EmailMessage

import pytest

from inboxview.application.ports.mail_source import RawMessage
from inboxview.domain.entities.mail import MailCategory, MailPriority
from inboxview.domain.exceptions import NormalizationError
from inboxview.infrastructure.email.common import CategoryMapper, make_preview, parse_priority, split_sender
from inboxview.infrastructure.email.providers.gmail.mapper import GmailNormalizer, get_header, select_body
from inboxview.infrastructure.email.providers.imap.mapper import Rfc822Normalizer

ACCOUNT = "me@example.com"


def _b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def _part(mime_type: str, data: bytes, charset: str = "UTF-8") -> dict:
    return {
        "mimeType": mime_type,
        "headers": [{"name": "Content-Type", "value": f"{mime_type}; charset={charset}"}],
        "body": {"data": _b64(data)},
    }


def _gmail(headers: list[tuple[str, str]], parts: list[dict] | None = None, labels=None, **extra) -> RawMessage:
    payload = {
        "mimeType": "multipart/alternative",
        "headers": [{"name": n, "value": v} for n, v in headers],
        "parts": parts if parts is not None else [_part("text/plain", b"plain body")],
    }
    msg = {"id": "g1", "labelIds": labels if labels is not None else ["INBOX"], "payload": payload, **extra}
    return RawMessage(provider="gmail", account=ACCOUNT, message_id="g1", payload=msg)


HEADERS = [
    ("From", "Jane Doe <jane@example.com>"),
    ("To", ACCOUNT),
    ("Subject", "Quarterly report"),
    ("Date", "Wed, 15 May 2024 10:30:00 +0200"),
]


# ============================================================================
# Gmail
# ============================================================================


def test_gmail_basic_fields() -> None:
    mail = GmailNormalizer()(_gmail(HEADERS, labels=["INBOX", "UNREAD"]))

    assert mail.id == "g1"
    assert mail.sender == "Jane Doe"
    assert mail.sender_address == "jane@example.com"
    assert mail.subject == "Quarterly report"
    assert mail.recipient == ACCOUNT
    assert mail.timestamp == datetime(2024, 5, 15, 8, 30, tzinfo=timezone.utc)
    assert mail.is_read is False
    assert mail.category is MailCategory.OTHER
    assert mail.priority is None


def test_gmail_without_unread_label_is_read() -> None:
    assert GmailNormalizer()(_gmail(HEADERS, labels=["INBOX"])).is_read is True


def test_gmail_header_lookup_is_case_insensitive() -> None:
    headers = [(name.lower(), value) for name, value in HEADERS]
    mail = GmailNormalizer()(_gmail(headers))
    assert mail.subject == "Quarterly report"
    assert mail.sender_address == "jane@example.com"


def test_get_header_takes_first_match() -> None:
    headers = [{"name": "Received", "value": "one"}, {"name": "RECEIVED", "value": "two"}]
    assert get_header(headers, "received") == "one"
    assert get_header(headers, "Subject") == ""


def test_gmail_prefers_html_part() -> None:
    parts = [_part("text/plain", b"plain body"), _part("text/html", b"<p>rich body</p>")]
    mail = GmailNormalizer()(_gmail(HEADERS, parts))
    assert mail.body == "<p>rich body</p>"
    assert mail.preview == "rich body"


def test_gmail_falls_back_to_plain_when_html_is_undecodable() -> None:
    parts = [_part("text/html", b"\xff\xfe\xfa broken"), _part("text/plain", b"plain body")]
    assert GmailNormalizer()(_gmail(HEADERS, parts)).body == "plain body"


def test_gmail_body_is_empty_when_nothing_decodes() -> None:
    mail = GmailNormalizer()(_gmail(HEADERS, [_part("text/html", b"\xff\xfe\xfa")]))
    assert mail.body == ""
    assert mail.preview == ""


def test_gmail_nested_multipart_and_declared_charset() -> None:
    nested = {
        "mimeType": "multipart/alternative",
        "parts": [_part("text/plain", "café".encode("latin-1"), charset="ISO-8859-1")],
    }
    mixed = [nested, {"mimeType": "application/pdf", "body": {"attachmentId": "att1"}}]
    assert select_body({"mimeType": "multipart/mixed", "parts": mixed}) == "café"


def test_gmail_single_part_body() -> None:
    assert select_body(_part("text/plain", b"just text")) == "just text"


def test_gmail_snippet_is_used_for_preview() -> None:
    mail = GmailNormalizer()(_gmail(HEADERS, snippet="Hi &amp; welcome"))
    assert mail.preview == "Hi & welcome"


def test_gmail_missing_from_is_a_normalization_error() -> None:
    headers = [h for h in HEADERS if h[0] != "From"]
    with pytest.raises(NormalizationError) as exc_info:
        GmailNormalizer()(_gmail(headers))
    assert exc_info.value.details == {"message_id": "g1"}


def test_gmail_falls_back_to_internal_date() -> None:
    headers = [h for h in HEADERS if h[0] != "Date"]
    mail = GmailNormalizer()(_gmail(headers, internalDate="1715769000000"))
    assert mail.timestamp == datetime(2024, 5, 15, 10, 30, tzinfo=timezone.utc)


def test_gmail_without_any_date_is_rejected() -> None:
    headers = [h for h in HEADERS if h[0] != "Date"]
    with pytest.raises(NormalizationError):
        GmailNormalizer()(_gmail(headers))


def test_gmail_recipient_defaults_to_account() -> None:
    headers = [h for h in HEADERS if h[0] != "To"]
    assert GmailNormalizer()(_gmail(headers)).recipient == ACCOUNT


def test_gmail_category_and_priority() -> None:
    headers = HEADERS + [("X-Priority", "1 (Highest)")]
    mail = GmailNormalizer()(_gmail(headers, labels=["INBOX", "CATEGORY_PROMOTIONS"]))
    assert mail.category is MailCategory.PROMOTION
    assert mail.priority is MailPriority.HIGH


def test_gmail_custom_category_mapping() -> None:
    normalizer = GmailNormalizer(CategoryMapper({"Label_42": "work"}))
    mail = normalizer(_gmail(HEADERS, labels=["INBOX", "Label_42"]))
    assert mail.category is MailCategory.WORK


# ============================================================================
# RFC 822 (IMAP)
# ============================================================================


def _rfc822(flags: list[str], include_from: bool = True, **payload) -> RawMessage:
    em = EmailMessage()
    if include_from:
        em["From"] = "GitHub <notifications@github.com>"
    em["To"] = ACCOUNT
    em["Subject"] = "New Pull Request"
    em["Date"] = "Wed, 15 May 2024 10:30:00 +0000"
    em["X-Priority"] = "5"
    em.set_content("A new pull request was opened.")
    em.add_alternative("<p>A new <b>pull request</b> was opened.</p>", subtype="html")
    data = {"uid": 42, "rfc822": em.as_bytes(), "flags": flags, "internal_date": None, **payload}
    return RawMessage(provider="imap", account=ACCOUNT, message_id="42", payload=data)


def test_rfc822_fields() -> None:
    mail = Rfc822Normalizer()(_rfc822(["\\Seen", "$Work"]))

    assert mail.id == "42"
    assert mail.sender == "GitHub"
    assert mail.sender_address == "notifications@github.com"
    assert mail.subject == "New Pull Request"
    assert mail.timestamp == datetime(2024, 5, 15, 10, 30, tzinfo=timezone.utc)
    assert mail.is_read is True
    assert mail.category is MailCategory.WORK
    assert mail.priority is MailPriority.LOW
    assert "<b>pull request</b>" in mail.body
    assert mail.preview == "A new pull request was opened."


def test_rfc822_without_seen_flag_is_unread() -> None:
    assert Rfc822Normalizer()(_rfc822([])).is_read is False


def test_rfc822_missing_from_is_rejected() -> None:
    with pytest.raises(NormalizationError):
        Rfc822Normalizer()(_rfc822([], include_from=False))


def test_rfc822_empty_payload_is_rejected() -> None:
    raw = RawMessage(provider="imap", account=ACCOUNT, message_id="7", payload={"uid": 7, "rfc822": b""})
    with pytest.raises(NormalizationError):
        Rfc822Normalizer()(raw)


# ============================================================================
# Shared helpers
# ============================================================================


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1", MailPriority.HIGH),
        ("2 (High)", MailPriority.HIGH),
        ("3 (Normal)", MailPriority.MEDIUM),
        ("5", MailPriority.LOW),
        ("urgent", None),
        (None, None),
    ],
)
def test_parse_priority(value, expected) -> None:
    assert parse_priority(value) is expected


def test_important_label_means_high_priority() -> None:
    assert parse_priority(None, ["INBOX", "IMPORTANT"]) is MailPriority.HIGH


def test_split_sender_without_display_name() -> None:
    assert split_sender("jane@example.com") == ("jane@example.com", "jane@example.com")


def test_preview_is_truncated() -> None:
    preview = make_preview(None, "<p>" + "word " * 100 + "</p>")
    assert len(preview) <= 200
    assert preview.endswith("…")


def test_unknown_labels_fall_into_other() -> None:
    mapper = CategoryMapper({"CATEGORY_SOCIAL": "social"})
    assert mapper(["INBOX", "STARRED"]) is MailCategory.OTHER
    assert mapper(["category_social"]) is MailCategory.SOCIAL
