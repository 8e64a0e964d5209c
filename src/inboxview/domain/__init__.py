"""Domain models and entities."""

from inboxview.domain.addresses import normalize_address
from inboxview.domain.entities.criteria import DateRange, FilterCriteria, MailStats, ReadState
from inboxview.domain.entities.mail import Mail, MailCategory, MailPriority
from inboxview.domain.exceptions import (
    InboxViewError,
    InvalidAddress,
    InvalidFilter,
    MailboxNotFound,
    MailNotFound,
    NormalizationError,
    SourceUnavailable,
)

__all__ = [
    "Mail",
    "MailCategory",
    "MailPriority",
    "FilterCriteria",
    "ReadState",
    "DateRange",
    "MailStats",
    "normalize_address",
    "InboxViewError",
    "InvalidAddress",
    "InvalidFilter",
    "SourceUnavailable",
    "NormalizationError",
    "MailNotFound",
    "MailboxNotFound",
]
