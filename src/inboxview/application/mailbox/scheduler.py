"""Periodic and on-demand refresh of one mailbox."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from loguru import logger

from inboxview.application.mailbox.store import MailboxStore
from inboxview.application.use_cases.refresh_mailbox import RefreshMailboxUseCase
from inboxview.domain.exceptions import InboxViewError, SourceUnavailable

DEFAULT_REFRESH_INTERVAL_SECONDS = 30.0


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class RefreshReport:
    """What one completed refresh cycle did to the store."""

    fetched: int
    added: int
    updated: int
    skipped: int
    completed_at: datetime


@dataclass(frozen=True)
class RefreshStatus:
    address: str
    state: RefreshState
    auto_refresh_enabled: bool
    interval_seconds: float
    last_refresh: Optional[datetime]
    last_error_kind: Optional[str]
    last_error_message: Optional[str]
    refresh_count: int
    mail_count: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class RefreshScheduler:
    """Drives refresh cycles for a single mailbox.

    State machine ``idle -> refreshing -> idle`` with an orthogonal
    auto-refresh flag. At most one fetch is in flight; a request arriving
    while one runs attaches to it and sees the same result or error. The
    in-flight cycle is shielded, so cancelling a waiting caller or the timer
    never cancels the fetch itself.
    """

    def __init__(
        self,
        store: MailboxStore,
        use_case: RefreshMailboxUseCase,
        interval_seconds: float = DEFAULT_REFRESH_INTERVAL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.store = store
        self.use_case = use_case
        self.interval_seconds = interval_seconds
        self._clock = clock

        self.state = RefreshState.IDLE
        self.auto_refresh_enabled = True
        self.last_refresh: Optional[datetime] = None
        self.last_error: Optional[InboxViewError] = None
        self.refresh_count = 0
        self.last_report: Optional[RefreshReport] = None

        self._started = False
        self._inflight: Optional[asyncio.Task[RefreshReport]] = None
        self._timer: Optional[asyncio.Task[None]] = None

    @property
    def address(self) -> str:
        return self.store.address

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> RefreshReport:
        """Activate the scheduler: arm the timer and run the first refresh."""
        if self._started:
            return await self.request_refresh()
        self._started = True
        if self.auto_refresh_enabled:
            self._arm_timer()
        logger.info(f"Scheduler started for {self.address} (every {self.interval_seconds:g}s)")
        return await self.request_refresh()

    async def request_refresh(self) -> RefreshReport:
        """Run a refresh cycle, or join the one already in flight."""
        if self._inflight is None:
            self._inflight = asyncio.create_task(self._run_cycle())
        else:
            logger.debug(f"Refresh for {self.address} already in flight, attaching")
        return await asyncio.shield(self._inflight)

    async def _run_cycle(self) -> RefreshReport:
        self.state = RefreshState.REFRESHING
        try:
            outcome = await self.use_case.run(self.address)
        except InboxViewError as e:
            self.last_error = e
            logger.error(f"Refresh failed for {self.address} ({e.kind}): {e.message}")
            raise
        except Exception as e:
            # an adapter leaked a non-domain error; report it as a provider failure
            logger.exception(f"Unexpected error refreshing {self.address}")
            error = SourceUnavailable(
                f"Refresh failed: {type(e).__name__}: {e}",
                provider=getattr(self.use_case.source, "provider", None),
                address=self.address,
            )
            self.last_error = error
            raise error from e
        else:
            merged = self.store.merge(outcome.mails)
            self.last_refresh = self._clock()
            self.last_error = None
            self.refresh_count += 1
            self.last_report = RefreshReport(
                fetched=outcome.fetched,
                added=merged.added,
                updated=merged.updated,
                skipped=len(outcome.skipped),
                completed_at=self.last_refresh,
            )
            return self.last_report
        finally:
            self.state = RefreshState.IDLE
            self._inflight = None

    def set_auto_refresh(self, enabled: bool) -> None:
        if enabled == self.auto_refresh_enabled:
            return
        self.auto_refresh_enabled = enabled
        if enabled:
            if self._started:
                self._arm_timer()
        else:
            self._cancel_timer()
        logger.info(f"Auto-refresh for {self.address} {'enabled' if enabled else 'disabled'}")

    def _arm_timer(self) -> None:
        if self._timer is None or self._timer.done():
            self._timer = asyncio.create_task(self._timer_loop())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _timer_loop(self) -> None:
        while self.auto_refresh_enabled:
            await asyncio.sleep(self.interval_seconds)
            if not self.auto_refresh_enabled:
                break
            try:
                await self.request_refresh()
            except InboxViewError:
                # already recorded on last_error and logged by _run_cycle
                continue
            except Exception:
                logger.exception(f"Unexpected error in refresh timer for {self.address}")

    async def close(self) -> None:
        """Stop the timer and let any in-flight cycle finish."""
        timer = self._timer
        self._cancel_timer()
        if timer is not None:
            await asyncio.gather(timer, return_exceptions=True)
        if self._inflight is not None:
            await asyncio.gather(self._inflight, return_exceptions=True)
        self._started = False
        logger.info(f"Scheduler stopped for {self.address}")

    def status(self) -> RefreshStatus:
        return RefreshStatus(
            address=self.address,
            state=self.state,
            auto_refresh_enabled=self.auto_refresh_enabled,
            interval_seconds=self.interval_seconds,
            last_refresh=self.last_refresh,
            last_error_kind=self.last_error.kind if self.last_error else None,
            last_error_message=self.last_error.message if self.last_error else None,
            refresh_count=self.refresh_count,
            mail_count=len(self.store),
        )
