"""Mailbox watcher - keeps one or more mailboxes refreshed and logs their counters."""

from __future__ import annotations

import argparse
import asyncio
import signal
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from inboxview.application.mailbox.mailbox import Mailbox
from inboxview.application.mailbox.registry import MailboxRegistry
from inboxview.domain.exceptions import InboxViewError
from inboxview.infrastructure import Settings, build_registry, configure_logging, get_settings


@dataclass
class WatcherStats:
    """Track watcher statistics."""

    cycles_completed: int = 0
    total_added: int = 0
    total_errors: int = 0
    last_cycle: datetime | None = None
    unread_by_mailbox: dict[str, int] = field(default_factory=dict)


class MailboxWatcher:
    """
    Refreshes each address every ``interval_seconds`` until stopped.

    Refresh cycles go through each mailbox's scheduler, so a failing provider
    is recorded on that mailbox and retried on the next cycle.
    """

    def __init__(self, registry: MailboxRegistry, addresses: list[str], interval_seconds: float) -> None:
        self.registry = registry
        self.addresses = addresses
        self.interval_seconds = interval_seconds
        self.stats = WatcherStats()
        self._stop = asyncio.Event()

    def stop(self) -> None:
        self._stop.set()

    async def _refresh(self, address: str) -> None:
        loaded = self.registry.is_loaded(address)
        mailbox: Mailbox = await self.registry.open(address)
        report = mailbox.scheduler.last_report
        if loaded:
            report = await mailbox.scheduler.request_refresh()
        if report is not None:
            self.stats.total_added += report.added
        counters = mailbox.stats()
        self.stats.unread_by_mailbox[mailbox.address] = counters.unread
        logger.info(
            f"{mailbox.address}: total={counters.total} unread={counters.unread} today={counters.today}"
        )

    async def _cycle(self) -> None:
        self.stats.last_cycle = datetime.now()
        logger.info(f"Starting refresh cycle #{self.stats.cycles_completed + 1}")
        for address in self.addresses:
            try:
                await self._refresh(address)
            except InboxViewError as e:
                self.stats.total_errors += 1
                logger.error(f"Error refreshing {address} ({e.kind}): {e.message}")
        self.stats.cycles_completed += 1
        self._log_stats()

    def _log_stats(self) -> None:
        logger.info(
            f"Watcher stats: "
            f"cycles={self.stats.cycles_completed}, "
            f"added={self.stats.total_added}, "
            f"errors={self.stats.total_errors}, "
            f"unread={self.stats.unread_by_mailbox}"
        )

    async def run(self) -> int:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._handle_shutdown, sig)

        logger.info(f"Watcher starting with {len(self.addresses)} mailbox(es)")
        logger.info(f"Refresh interval: {self.interval_seconds:g} seconds")
        for address in self.addresses:
            logger.info(f"  - {address}")

        try:
            while not self._stop.is_set():
                await self._cycle()
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            await self.registry.close()

        logger.info("Watcher shutdown complete")
        self._log_stats()
        return 0

    def _handle_shutdown(self, signum: int) -> None:
        logger.info(f"Received signal {signum}, shutting down...")
        self.stop()


def main() -> int:
    """Entry point for the mailbox watcher."""
    parser = argparse.ArgumentParser(description="Keep mailboxes refreshed and log their counters")
    parser.add_argument("--to", action="append", required=True, help="Target address (repeatable)")
    parser.add_argument("--interval", type=float, default=None, help="Seconds between cycles")
    args = parser.parse_args()

    settings: Settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("=" * 60)
    logger.info(f"{settings.app_name} Watcher")
    logger.info("=" * 60)

    try:
        registry = build_registry(settings)
    except ValueError as e:
        logger.error(f"Failed to build mail source: {e}")
        return 1
    # the watcher drives cycles itself
    registry.auto_refresh = False

    watcher = MailboxWatcher(
        registry=registry,
        addresses=args.to,
        interval_seconds=args.interval or settings.refresh_interval_seconds,
    )
    return asyncio.run(watcher.run())


if __name__ == "__main__":
    raise SystemExit(main())
