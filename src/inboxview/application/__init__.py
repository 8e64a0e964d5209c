"""Application layer - mailbox state, refresh scheduling and queries."""

from inboxview.application.mailbox.mailbox import Mailbox
from inboxview.application.mailbox.registry import MailboxRegistry
from inboxview.application.mailbox.scheduler import RefreshReport, RefreshScheduler, RefreshState, RefreshStatus
from inboxview.application.mailbox.store import MailboxStore, MergeResult
from inboxview.application.use_cases.refresh_mailbox import FetchOutcome, RefreshMailboxUseCase

__all__ = [
    "Mailbox",
    "MailboxRegistry",
    "MailboxStore",
    "MergeResult",
    "RefreshScheduler",
    "RefreshState",
    "RefreshStatus",
    "RefreshReport",
    "RefreshMailboxUseCase",
    "FetchOutcome",
]
