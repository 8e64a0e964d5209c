from __future__ import annotations
import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any, Iterator, Mapping, Optional, Sequence

from loguru import logger

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
from inboxview.infrastructure.settings import DEFAULT_CATEGORY_LABELS

UNREAD_LABEL = "UNREAD"
_CHARSET_RE = re.compile(r"charset\s*=\s*\"?([\w.:-]+)\"?", re.IGNORECASE)


def get_header(headers: Sequence[Mapping[str, Any]], name: str) -> str:
    """First header called ``name`` (case-insensitive), or ''."""
    wanted = name.lower()
    for header in headers:
        if str(header.get("name", "")).lower() == wanted:
            return str(header.get("value") or "").strip()
    return ""


def _iter_parts(part: Mapping[str, Any]) -> Iterator[Mapping[str, Any]]:
    yield part
    for sub in part.get("parts") or []:
        yield from _iter_parts(sub)


def _decode_part(part: Mapping[str, Any]) -> Optional[str]:
    data = (part.get("body") or {}).get("data")
    if not data:
        return None
    try:
        raw = base64.urlsafe_b64decode(data + "=" * (-len(data) % 4))
    except (binascii.Error, ValueError):
        logger.warning(f"Undecodable base64 in {part.get('mimeType')} part")
        return None

    match = _CHARSET_RE.search(get_header(part.get("headers") or [], "Content-Type"))
    charset = match.group(1) if match else "utf-8"
    for encoding in dict.fromkeys((charset, "utf-8")):
        try:
            return raw.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    logger.warning(f"Could not decode {part.get('mimeType')} part as {charset}")
    return None


def select_body(payload: Mapping[str, Any]) -> str:
    """Prefer an HTML part, then plain text; '' when neither decodes."""
    if not payload.get("parts"):
        return _decode_part(payload) or ""

    parts = list(_iter_parts(payload))
    for mime_type in ("text/html", "text/plain"):
        for part in parts:
            if part.get("mimeType") != mime_type:
                continue
            text = _decode_part(part)
            if text is not None:
                return text
    return ""


def _internal_date(value: Any) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class GmailNormalizer:
    """Gmail API ``users.messages.get(format="full")`` record -> Mail."""

    provider = "gmail"

    def __init__(self, categories: Optional[CategoryMapper] = None) -> None:
        self.categories = categories or CategoryMapper(DEFAULT_CATEGORY_LABELS)

    def __call__(self, raw: RawMessage) -> Mail:
        msg = raw.payload
        msg_id = str(msg.get("id") or raw.message_id or "")
        if not msg_id:
            raise NormalizationError("Message has no id")

        payload = msg.get("payload")
        if not isinstance(payload, Mapping):
            raise NormalizationError("Message has no payload", msg_id)
        headers = payload.get("headers") or []

        from_value = get_header(headers, "From")
        if not from_value:
            raise NormalizationError("Missing From header", msg_id)
        sender, sender_address = split_sender(from_value)

        timestamp = parse_date(get_header(headers, "Date")) or _internal_date(msg.get("internalDate"))
        if timestamp is None:
            raise NormalizationError("Missing or unparseable Date header", msg_id)

        labels = [str(label) for label in msg.get("labelIds") or []]
        body = select_body(payload)

        return Mail(
            id=msg_id,
            sender=sender,
            sender_address=sender_address,
            subject=get_header(headers, "Subject"),
            preview=make_preview(msg.get("snippet"), body),
            body=body,
            recipient=get_header(headers, "To") or raw.account,
            timestamp=timestamp,
            is_read=UNREAD_LABEL not in labels,
            category=self.categories(labels),
            priority=parse_priority(get_header(headers, "X-Priority"), labels),
        )
