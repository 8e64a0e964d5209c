"""Filter a mailbox's contents by search text, category, read state and date."""

from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Iterable, Optional

from inboxview.domain.entities.criteria import DateRange, FilterCriteria, ReadState
from inboxview.domain.entities.mail import Mail


def local_now(now: Optional[datetime] = None, zone: Optional[tzinfo] = None) -> datetime:
    """Return an aware 'now', in ``zone`` when given. Naive values are taken as system local time."""
    if now is None:
        return datetime.now(zone) if zone is not None else datetime.now().astimezone()
    if now.tzinfo is None:
        return now.astimezone()
    return now


def _matches_text(mail: Mail, needle: str) -> bool:
    return any(
        needle in field.lower()
        for field in (mail.sender, mail.sender_address, mail.subject, mail.preview)
    )


def _in_date_range(mail: Mail, date_range: DateRange, now: datetime) -> bool:
    if date_range is DateRange.ALL:
        return True

    local = mail.timestamp.astimezone(now.tzinfo)
    if date_range is DateRange.TODAY:
        return local.date() == now.date()
    if date_range is DateRange.THIS_WEEK:
        return local.isocalendar()[:2] == now.isocalendar()[:2]
    if date_range is DateRange.THIS_MONTH:
        return (local.year, local.month) == (now.year, now.month)
    raise ValueError(f"Unknown date range: {date_range}")


def matches(criteria: FilterCriteria, mail: Mail, now: datetime) -> bool:
    """True if ``mail`` satisfies every predicate of ``criteria``."""
    needle = criteria.text.lower()
    if needle and not _matches_text(mail, needle):
        return False

    if criteria.category is not None and mail.category is not criteria.category:
        return False

    if criteria.read_state is ReadState.READ and not mail.is_read:
        return False
    if criteria.read_state is ReadState.UNREAD and mail.is_read:
        return False

    return _in_date_range(mail, criteria.date_range, now)


def apply(criteria: FilterCriteria, mails: Iterable[Mail], now: Optional[datetime] = None) -> list[Mail]:
    """Return the mails matching ``criteria``, keeping the input order.

    Date ranges are evaluated on the calendar of ``now``'s timezone.
    """
    now = local_now(now)
    return [mail for mail in mails if matches(criteria, mail, now)]
