from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from inboxview.domain.entities.mail import MailCategory


class ReadState(str, Enum):
    ALL = "all"
    READ = "read"
    UNREAD = "unread"


class DateRange(str, Enum):
    ALL = "all"
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"


@dataclass(frozen=True)
class FilterCriteria:
    """Per-query filter. Every field defaults to "no constraint"."""

    text: str = ""
    category: Optional[MailCategory] = None
    read_state: ReadState = ReadState.ALL
    date_range: DateRange = DateRange.ALL


@dataclass(frozen=True)
class MailStats:
    total: int
    unread: int
    today: int
