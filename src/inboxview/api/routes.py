"""
API routes for the Inbox View service.

Every mailbox route takes the target address as ``?to=``. The first query for
an address opens its mailbox and runs the initial refresh. Status and
auto-refresh routes only read open mailboxes and answer 404 otherwise.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, Query, Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from inboxview.application.mailbox.mailbox import Mailbox
from inboxview.application.mailbox.query import local_now
from inboxview.application.mailbox.registry import MailboxRegistry
from inboxview.application.mailbox.scheduler import RefreshReport, RefreshState, RefreshStatus
from inboxview.domain.addresses import normalize_address
from inboxview.domain.entities.criteria import DateRange, FilterCriteria, ReadState
from inboxview.domain.entities.mail import MailCategory, MailPriority
from inboxview.domain.exceptions import InvalidFilter, MailboxNotFound
from inboxview.infrastructure.settings import Settings

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class CamelModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)


class MailResponse(CamelModel):
    """A canonical mail record."""

    id: str
    sender: str
    sender_address: str
    subject: str
    preview: str
    body: str
    recipient: str
    timestamp: datetime
    is_read: bool
    category: MailCategory
    priority: Optional[MailPriority] = None


class StatsResponse(CamelModel):
    """Dashboard counters over the whole mailbox."""

    address: str
    total: int
    unread: int
    today: int


class StatusResponse(CamelModel):
    """Refresh state of one mailbox."""

    address: str
    state: RefreshState
    auto_refresh_enabled: bool
    interval_seconds: float
    last_refresh: Optional[datetime] = None
    last_error_kind: Optional[str] = None
    last_error_message: Optional[str] = None
    refresh_count: int
    mail_count: int


class RefreshResponse(CamelModel):
    """Outcome of a manual refresh."""

    fetched: int
    added: int
    updated: int
    skipped: int
    completed_at: datetime
    status: StatusResponse


class DiscardResponse(CamelModel):
    address: str
    discarded: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    message: str
    timestamp: str
    version: str


# ============================================================================
# Dependencies
# ============================================================================


def get_registry(request: Request) -> MailboxRegistry:
    return request.app.state.registry


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def resolve_timezone(
    tz: Optional[str] = Query(None, description="IANA zone of the caller's calendar"),
    settings: Settings = Depends(get_app_settings),
) -> Optional[tzinfo]:
    name = tz or settings.local_timezone
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidFilter("tz", name) from e


def caller_now(zone: Optional[tzinfo] = Depends(resolve_timezone)) -> datetime:
    return local_now(zone=zone)


def build_criteria(
    q: str = Query("", description="Case-insensitive text over sender, subject and preview"),
    category: str = Query("all", description="Category or 'all'"),
    read_state: ReadState = Query(ReadState.ALL),
    date_range: DateRange = Query(DateRange.ALL),
) -> FilterCriteria:
    parsed: Optional[MailCategory] = None
    if category.lower() != "all":
        try:
            parsed = MailCategory(category.lower())
        except ValueError as e:
            raise InvalidFilter("category", category) from e
    return FilterCriteria(text=q, category=parsed, read_state=read_state, date_range=date_range)


def get_open_mailbox(
    to: Optional[str] = Query(None),
    registry: MailboxRegistry = Depends(get_registry),
) -> Mailbox:
    """An already-open mailbox. Never opens or refreshes one."""
    mailbox = registry.get(to)
    if mailbox is None:
        raise MailboxNotFound(normalize_address(to))
    return mailbox


def _status(status: RefreshStatus) -> StatusResponse:
    return StatusResponse.model_validate(status)


# ============================================================================
# Health Endpoints
# ============================================================================


@router.get("/", response_model=HealthResponse, tags=["health"])
@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(settings: Settings = Depends(get_app_settings)) -> HealthResponse:
    """Liveness check."""
    return HealthResponse(
        status="online",
        message=f"{settings.app_name} API is running.",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.app_version,
    )


# ============================================================================
# Messages
# ============================================================================


@router.get("/messages", response_model=list[MailResponse], tags=["messages"])
@router.get("/api", response_model=list[MailResponse], tags=["messages"], include_in_schema=False)
async def list_messages(
    to: Optional[str] = Query(None, description="Target email address"),
    refresh: bool = Query(False, description="Refresh from the provider before answering"),
    criteria: FilterCriteria = Depends(build_criteria),
    now: datetime = Depends(caller_now),
    registry: MailboxRegistry = Depends(get_registry),
) -> list[MailResponse]:
    """Mail for ``to``, newest first, filtered by the optional criteria."""
    loaded = registry.is_loaded(to)
    mailbox = await registry.open(to)
    if refresh and loaded:
        await mailbox.scheduler.request_refresh()
    mails = mailbox.messages(criteria, now=now)
    return [MailResponse.model_validate(mail) for mail in mails]


@router.get("/messages/stats", response_model=StatsResponse, tags=["messages"])
async def message_stats(
    to: Optional[str] = Query(None),
    now: datetime = Depends(caller_now),
    registry: MailboxRegistry = Depends(get_registry),
) -> StatsResponse:
    mailbox = await registry.open(to)
    stats = mailbox.stats(now=now)
    return StatsResponse(address=mailbox.address, total=stats.total, unread=stats.unread, today=stats.today)


@router.get("/messages/{mail_id}", response_model=MailResponse, tags=["messages"])
async def get_message(
    mail_id: str,
    to: Optional[str] = Query(None),
    registry: MailboxRegistry = Depends(get_registry),
) -> MailResponse:
    mailbox = await registry.open(to)
    return MailResponse.model_validate(mailbox.get(mail_id))


@router.post("/messages/{mail_id}/read", response_model=MailResponse, tags=["messages"])
async def mark_message_read(
    mail_id: str,
    to: Optional[str] = Query(None),
    registry: MailboxRegistry = Depends(get_registry),
) -> MailResponse:
    """Mark a mail as read locally. Read state never reverts."""
    mailbox = await registry.open(to)
    return MailResponse.model_validate(mailbox.mark_read(mail_id))


# ============================================================================
# Mailbox lifecycle
# ============================================================================


@router.get("/mailboxes", response_model=list[str], tags=["mailboxes"])
async def list_mailboxes(registry: MailboxRegistry = Depends(get_registry)) -> list[str]:
    return registry.addresses()


@router.post("/mailboxes/refresh", response_model=RefreshResponse, tags=["mailboxes"])
async def refresh_mailbox(
    to: Optional[str] = Query(None),
    registry: MailboxRegistry = Depends(get_registry),
) -> RefreshResponse:
    """Manual refresh. Joins the in-flight refresh if one is running."""
    loaded = registry.is_loaded(to)
    mailbox = await registry.open(to)
    report: Optional[RefreshReport] = mailbox.scheduler.last_report
    if loaded or report is None:
        report = await mailbox.scheduler.request_refresh()
    return RefreshResponse(
        fetched=report.fetched,
        added=report.added,
        updated=report.updated,
        skipped=report.skipped,
        completed_at=report.completed_at,
        status=_status(mailbox.scheduler.status()),
    )


@router.get("/mailboxes/status", response_model=StatusResponse, tags=["mailboxes"])
async def mailbox_status(mailbox: Mailbox = Depends(get_open_mailbox)) -> StatusResponse:
    """Refresh state of an open mailbox. Never fetches."""
    return _status(mailbox.scheduler.status())


@router.put("/mailboxes/auto-refresh", response_model=StatusResponse, tags=["mailboxes"])
async def set_auto_refresh(
    enabled: bool = Query(...),
    mailbox: Mailbox = Depends(get_open_mailbox),
) -> StatusResponse:
    mailbox.scheduler.set_auto_refresh(enabled)
    return _status(mailbox.scheduler.status())


@router.delete("/mailboxes", response_model=DiscardResponse, tags=["mailboxes"])
async def discard_mailbox(
    to: Optional[str] = Query(None),
    registry: MailboxRegistry = Depends(get_registry),
) -> DiscardResponse:
    """Drop the mailbox and stop its scheduler (the consumer navigated away)."""
    discarded = await registry.discard(to)
    return DiscardResponse(address=(to or "").strip().lower(), discarded=discarded)
