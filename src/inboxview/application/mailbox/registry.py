"""Lifetime management for per-address mailboxes."""

from __future__ import annotations

from typing import Callable, Optional

from loguru import logger

from inboxview.application.mailbox.mailbox import Mailbox
from inboxview.application.mailbox.scheduler import DEFAULT_REFRESH_INTERVAL_SECONDS, RefreshScheduler
from inboxview.application.mailbox.store import MailboxStore
from inboxview.application.ports.mail_source import MailSource, Normalizer
from inboxview.application.use_cases.refresh_mailbox import (
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    RefreshMailboxUseCase,
)
from inboxview.domain.addresses import normalize_address


class MailboxRegistry:
    """Creates a mailbox on first query for an address and discards it on request.

    Each mailbox gets its own source, store and scheduler; nothing mutable is
    shared between addresses.
    """

    def __init__(
        self,
        source_factory: Callable[[], MailSource],
        normalize: Normalizer,
        refresh_interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        fetch_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        auto_refresh: bool = True,
    ) -> None:
        self.source_factory = source_factory
        self.normalize = normalize
        self.refresh_interval_seconds = refresh_interval_seconds
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.auto_refresh = auto_refresh
        self._mailboxes: dict[str, Mailbox] = {}

    def _create(self, address: str) -> Mailbox:
        store = MailboxStore(address)
        use_case = RefreshMailboxUseCase(
            source=self.source_factory(),
            normalize=self.normalize,
            timeout_seconds=self.fetch_timeout_seconds,
        )
        scheduler = RefreshScheduler(store, use_case, interval_seconds=self.refresh_interval_seconds)
        scheduler.auto_refresh_enabled = self.auto_refresh
        return Mailbox(address=address, store=store, scheduler=scheduler)

    async def open(self, address: Optional[str]) -> Mailbox:
        """Return the mailbox for ``address``, creating and activating it if needed.

        Until a mailbox has completed one successful refresh, opening it
        (re)runs or joins the initial refresh and propagates its error.
        """
        key = normalize_address(address)
        mailbox = self._mailboxes.get(key)
        if mailbox is None:
            mailbox = self._create(key)
            self._mailboxes[key] = mailbox
            logger.info(f"Opened mailbox {key}")
            await mailbox.scheduler.start()
        elif mailbox.scheduler.last_refresh is None:
            await mailbox.scheduler.request_refresh()
        return mailbox

    def get(self, address: Optional[str]) -> Optional[Mailbox]:
        return self._mailboxes.get(normalize_address(address))

    def is_loaded(self, address: Optional[str]) -> bool:
        """True when the mailbox is open and has completed a refresh, so ``open`` will not fetch."""
        mailbox = self.get(address)
        return mailbox is not None and mailbox.scheduler.last_refresh is not None

    async def discard(self, address: Optional[str]) -> bool:
        mailbox = self._mailboxes.pop(normalize_address(address), None)
        if mailbox is None:
            return False
        await mailbox.scheduler.close()
        logger.info(f"Discarded mailbox {mailbox.address}")
        return True

    async def close(self) -> None:
        """Stop every scheduler (process shutdown)."""
        mailboxes = list(self._mailboxes.values())
        self._mailboxes.clear()
        for mailbox in mailboxes:
            await mailbox.scheduler.close()

    def addresses(self) -> list[str]:
        return sorted(self._mailboxes)

    def __len__(self) -> int:
        return len(self._mailboxes)
