"""Helpers shared by the provider-specific normalizers."""

from __future__ import annotations

import html
import re
from datetime import datetime, timezone
from email.utils import parseaddr, parsedate_to_datetime
from typing import Iterable, Mapping, Optional

from loguru import logger

from inboxview.domain.entities.mail import MailCategory, MailPriority

PREVIEW_LENGTH = 200

_HIDDEN_BLOCK_RE = re.compile(r"<(script|style|head)\b.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]+>")
_WS_RE = re.compile(r"\s+")
_PRIORITY_RE = re.compile(r"^\s*([1-5])")


def html_to_text(markup: str) -> str:
    """Crude tag strip, good enough for a one-line preview."""
    text = _HIDDEN_BLOCK_RE.sub(" ", markup)
    text = _TAG_RE.sub(" ", text)
    return _WS_RE.sub(" ", html.unescape(text)).strip()


def make_preview(snippet: Optional[str], body: str) -> str:
    if snippet:
        text = _WS_RE.sub(" ", html.unescape(snippet)).strip()
    else:
        text = html_to_text(body)
    if len(text) > PREVIEW_LENGTH:
        text = text[: PREVIEW_LENGTH - 1].rstrip() + "…"
    return text


def split_sender(value: str) -> tuple[str, str]:
    """'Jane Doe <jane@example.com>' -> ('Jane Doe', 'jane@example.com')."""
    name, address = parseaddr(value)
    address = address.strip()
    name = name.strip() or address or value.strip()
    return name, address


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 2822 date into an aware UTC datetime, or None."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        logger.debug(f"Unparseable Date header: {value!r}")
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_priority(x_priority: Optional[str], labels: Iterable[str] = ()) -> Optional[MailPriority]:
    """X-Priority 1-2 high, 3 medium, 4-5 low; otherwise an IMPORTANT label means high."""
    if x_priority:
        match = _PRIORITY_RE.match(x_priority)
        if match:
            level = int(match.group(1))
            if level <= 2:
                return MailPriority.HIGH
            if level == 3:
                return MailPriority.MEDIUM
            return MailPriority.LOW
    if any(label.upper() == "IMPORTANT" for label in labels):
        return MailPriority.HIGH
    return None


class CategoryMapper:
    """Maps provider labels onto the closed MailCategory set.

    Label names are compared case-insensitively, ignoring IMAP's ``$`` and
    ``\\`` prefixes. The first mapped label wins; unmapped mail is ``other``.
    """

    def __init__(self, mapping: Mapping[str, str]) -> None:
        self.mapping: dict[str, MailCategory] = {
            self._key(label): MailCategory(category) for label, category in mapping.items()
        }

    @staticmethod
    def _key(label: str) -> str:
        return label.lstrip("$\\").upper()

    def __call__(self, labels: Iterable[str]) -> MailCategory:
        for label in labels:
            category = self.mapping.get(self._key(label))
            if category is not None:
                return category
        return MailCategory.OTHER
