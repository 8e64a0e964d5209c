from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class MailCategory(str, Enum):
    """Closed set of categories a mail can be filed under."""

    WORK = "work"
    PERSONAL = "personal"
    PROMOTION = "promotion"
    SOCIAL = "social"
    UPDATES = "updates"
    FORUMS = "forums"
    OTHER = "other"


class MailPriority(str, Enum):
    """Advisory priority hint."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class Mail:
    id: str
    sender: str
    sender_address: str
    subject: str
    preview: str
    body: str
    recipient: str
    timestamp: datetime  # aware, UTC
    is_read: bool
    category: MailCategory = MailCategory.OTHER
    priority: Optional[MailPriority] = None

    @property
    def sort_key(self) -> tuple[float, str]:
        # newest first, then id ascending
        return (-self.timestamp.timestamp(), self.id)
