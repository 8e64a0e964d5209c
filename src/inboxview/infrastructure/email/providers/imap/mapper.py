from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional

from inboxview.application.ports.mail_source import RawMessage
from inboxview.domain.entities.mail import Mail
from inboxview.domain.exceptions import NormalizationError
from inboxview.infrastructure.email.common import (
    CategoryMapper,
    make_preview,
    parse_date,
    parse_priority,
    split_sender,
)
from inboxview.infrastructure.email.rfc822 import displayable_body, header, parse_rfc822
from inboxview.infrastructure.settings import DEFAULT_CATEGORY_LABELS

SEEN_FLAG = "\\Seen"


class Rfc822Normalizer:
    """IMAP ``{uid, rfc822, flags, internal_date}`` payload -> Mail."""

    provider = "imap"

    def __init__(self, categories: Optional[CategoryMapper] = None) -> None:
        self.categories = categories or CategoryMapper(DEFAULT_CATEGORY_LABELS)

    def __call__(self, raw: RawMessage) -> Mail:
        payload = raw.payload
        msg_id = str(payload.get("uid") or raw.message_id or "")
        if not msg_id:
            raise NormalizationError("Message has no UID")

        data = payload.get("rfc822")
        if not isinstance(data, (bytes, bytearray)) or not data:
            raise NormalizationError("Empty RFC 822 payload", msg_id)
        em = parse_rfc822(bytes(data))

        from_value = header(em, "From")
        if not from_value:
            raise NormalizationError("Missing From header", msg_id)
        sender, sender_address = split_sender(from_value)

        timestamp = parse_date(header(em, "Date"))
        if timestamp is None:
            internal: Optional[datetime] = payload.get("internal_date")
            timestamp = internal.astimezone(timezone.utc) if internal else None
        if timestamp is None:
            raise NormalizationError("Missing or unparseable Date header", msg_id)

        flags = [str(f) for f in payload.get("flags") or []]
        body = displayable_body(em)

        return Mail(
            id=msg_id,
            sender=sender,
            sender_address=sender_address,
            subject=header(em, "Subject"),
            preview=make_preview(None, body),
            body=body,
            recipient=header(em, "To") or raw.account,
            timestamp=timestamp,
            is_read=SEEN_FLAG in flags,
            category=self.categories(flags),
            priority=parse_priority(header(em, "X-Priority"), flags),
        )
