from __future__ import annotations

from datetime import datetime, time
from typing import Iterable, Optional

from inboxview.application.mailbox.query import local_now
from inboxview.domain.entities.criteria import MailStats
from inboxview.domain.entities.mail import Mail


def compute_stats(mails: Iterable[Mail], now: Optional[datetime] = None) -> MailStats:
    """Summary counts over the full, unfiltered mailbox.

    ``today`` counts mails with local midnight <= timestamp < now.
    """
    now = local_now(now)
    midnight = datetime.combine(now.date(), time(), tzinfo=now.tzinfo)

    total = unread = today = 0
    for mail in mails:
        total += 1
        if not mail.is_read:
            unread += 1
        if midnight <= mail.timestamp < now:
            today += 1
    return MailStats(total=total, unread=unread, today=today)
