"""Pytest configuration and fixtures for inboxview.

Mailbox tests run against an in-memory fake source; HTTP tests use
inboxview.api.main.create_app with an injected registry so no provider is
contacted.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import pytest
from httpx import ASGITransport, AsyncClient

from inboxview.api.main import create_app
from inboxview.application.mailbox.registry import MailboxRegistry
from inboxview.application.ports.mail_source import RawMessage
from inboxview.domain.entities.mail import Mail, MailCategory
from inboxview.domain.exceptions import NormalizationError
from inboxview.infrastructure.settings import Settings

# Fixed reference instant for calendar-sensitive tests (a Wednesday)
NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


class FakeMailSource:
    """Scriptable mail source.

    ``mails`` are returned on every fetch, ``broken_ids`` add raw messages the
    fake normalizer rejects, ``error`` makes the fetch fail and ``gate`` (when
    set) holds every fetch until it is released.
    """

    provider = "fake"

    def __init__(self) -> None:
        self.mails: list[Mail] = []
        self.broken_ids: list[str] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.calls = 0

    async def fetch(self, address: str) -> list[RawMessage]:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        raws = [
            RawMessage(provider=self.provider, account=address, message_id=m.id, payload={"mail": m})
            for m in self.mails
        ]
        raws += [
            RawMessage(provider=self.provider, account=address, message_id=i, payload={})
            for i in self.broken_ids
        ]
        return raws


def fake_normalize(raw: RawMessage) -> Mail:
    mail = raw.payload.get("mail")
    if mail is None:
        raise NormalizationError("Missing From header", raw.message_id)
    return mail


def build_mail(
    mail_id: str,
    subject: str = "Hello",
    timestamp: datetime = NOW,
    is_read: bool = False,
    category: MailCategory = MailCategory.OTHER,
    sender: str = "Jane Doe",
    sender_address: str = "jane@example.com",
    preview: str = "",
) -> Mail:
    return Mail(
        id=mail_id,
        sender=sender,
        sender_address=sender_address,
        subject=subject,
        preview=preview or f"About {subject.lower()}",
        body=f"<p>{subject}</p>",
        recipient="me@example.com",
        timestamp=timestamp,
        is_read=is_read,
        category=category,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_mail() -> Callable[..., Mail]:
    return build_mail


@pytest.fixture
def two_mails() -> list[Mail]:
    """Today's unread work mail and a read promotion from three days ago."""
    return [
        build_mail(
            "m1",
            subject="Weekly Team Meeting",
            timestamp=NOW - timedelta(hours=1),
            is_read=False,
            category=MailCategory.WORK,
            sender="John Carter",
            sender_address="john@company.com",
        ),
        build_mail(
            "m2",
            subject="Invoice #12345",
            timestamp=NOW - timedelta(days=3),
            is_read=True,
            category=MailCategory.PROMOTION,
            sender="Billing",
            sender_address="billing@shop.example",
        ),
    ]


@pytest.fixture
def normalize() -> Callable[[RawMessage], Mail]:
    return fake_normalize


@pytest.fixture
def fake_source() -> FakeMailSource:
    return FakeMailSource()


@pytest.fixture
async def registry(fake_source: FakeMailSource) -> MailboxRegistry:
    registry = MailboxRegistry(
        source_factory=lambda: fake_source,
        normalize=fake_normalize,
        refresh_interval_seconds=3600,
        fetch_timeout_seconds=1.0,
        auto_refresh=False,
    )
    yield registry
    await registry.close()


@pytest.fixture
async def client(registry: MailboxRegistry) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI)."""
    app = create_app(settings=Settings(mail_provider="demo", local_timezone="UTC"), registry=registry)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
