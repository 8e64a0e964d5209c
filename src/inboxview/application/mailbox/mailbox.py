from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from inboxview.application.mailbox import query
from inboxview.application.mailbox.scheduler import RefreshScheduler
from inboxview.application.mailbox.stats import compute_stats
from inboxview.application.mailbox.store import MailboxStore
from inboxview.domain.entities.criteria import FilterCriteria, MailStats
from inboxview.domain.entities.mail import Mail
from inboxview.domain.exceptions import MailNotFound


@dataclass
class Mailbox:
    """The per-address view: a store plus the scheduler that keeps it fresh."""

    address: str
    store: MailboxStore
    scheduler: RefreshScheduler

    def messages(self, criteria: Optional[FilterCriteria] = None, now: Optional[datetime] = None) -> list[Mail]:
        mails = self.store.all()
        if criteria is None:
            return mails
        return query.apply(criteria, mails, now=now)

    def get(self, mail_id: str) -> Mail:
        mail = self.store.get(mail_id)
        if mail is None:
            raise MailNotFound(mail_id)
        return mail

    def mark_read(self, mail_id: str) -> Mail:
        if mail_id not in self.store:
            raise MailNotFound(mail_id)
        self.store.mark_read(mail_id)
        return self.get(mail_id)

    def stats(self, now: Optional[datetime] = None) -> MailStats:
        return compute_stats(self.store.all(), now=now)
