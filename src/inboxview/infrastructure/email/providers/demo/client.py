"""Offline mail source producing Gmail-shaped messages for local development."""

from __future__ import annotations

import asyncio
import base64
import html
import random
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Any, Callable, Optional

from loguru import logger

from inboxview.application.ports.mail_source import MailSource, RawMessage
from inboxview.domain.addresses import normalize_address

SENDERS = [
    ("John Carter", "john@company.com"),
    ("Sarah Lin", "sarah@startup.io"),
    ("GitHub", "notifications@github.com"),
    ("Slack", "team@slack.com"),
    ("Medium Daily Digest", "newsletter@medium.com"),
    ("AWS Notifications", "alerts@aws.com"),
]
SUBJECTS = [
    "Weekly Team Meeting",
    "Project Update Required",
    "New Pull Request",
    "System Maintenance Notice",
    "Monthly Newsletter",
    "Security Alert",
    "Invoice #12345",
    "Welcome to our platform",
    "Password Reset Request",
    "New Comment on your post",
]
CATEGORY_LABELS = ["WORK", "CATEGORY_PERSONAL", "CATEGORY_PROMOTIONS", "CATEGORY_SOCIAL", "CATEGORY_UPDATES"]
PRIORITIES = ["1 (Highest)", "3 (Normal)", "5 (Lowest)"]


def _b64(text: str) -> str:
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DemoMailSource(MailSource):
    """Generates a plausible inbox per address and grows it on every fetch.

    Ids are stable (``demo-0001``...), so refreshes exercise the store's
    dedup and read-state rules like a real provider would.
    """

    provider = "demo"

    def __init__(
        self,
        seed: Optional[int] = None,
        initial_count: tuple[int, int] = (15, 20),
        max_new_per_fetch: int = 2,
        max_messages: int = 50,
        latency_seconds: float = 0.2,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._rng = random.Random(seed)
        self.initial_count = initial_count
        self.max_new_per_fetch = max_new_per_fetch
        self.max_messages = max_messages
        self.latency_seconds = latency_seconds
        self._clock = clock
        self._inboxes: dict[str, list[dict[str, Any]]] = {}
        self._counter = 0

    async def fetch(self, address: str) -> list[RawMessage]:
        address = normalize_address(address)
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        now = self._clock()
        inbox = self._inboxes.get(address)
        if inbox is None:
            count = self._rng.randint(*self.initial_count)
            inbox = [self._generate(address, self._backdated(now)) for _ in range(count)]
            self._inboxes[address] = inbox
            logger.info(f"Demo inbox for {address} seeded with {count} messages")
        else:
            for _ in range(self._rng.randint(0, self.max_new_per_fetch)):
                inbox.append(self._generate(address, now))

        newest = sorted(inbox, key=lambda m: int(m["internalDate"]), reverse=True)[: self.max_messages]
        return [
            RawMessage(provider=self.provider, account=address, message_id=m["id"], payload=m)
            for m in newest
        ]

    def _backdated(self, now: datetime) -> datetime:
        # roughly 70% within the last day, the rest within the last week
        if self._rng.random() > 0.3:
            return now - timedelta(seconds=self._rng.uniform(0, 24 * 3600))
        return now - timedelta(seconds=self._rng.uniform(0, 7 * 24 * 3600))

    def _generate(self, address: str, sent_at: datetime) -> dict[str, Any]:
        self._counter += 1
        msg_id = f"demo-{self._counter:04d}"
        name, sender = self._rng.choice(SENDERS)
        subject = self._rng.choice(SUBJECTS)
        topic = self._rng.choice(SUBJECTS).lower()
        text = (
            "This is a preview of the email content. "
            f"It contains important information about {topic}."
        )
        markup = f"<html><body><h1>{html.escape(subject)}</h1><p>{html.escape(text)}</p></body></html>"

        labels = ["INBOX", self._rng.choice(CATEGORY_LABELS)]
        if self._rng.random() <= 0.4:
            labels.append("UNREAD")

        return {
            "id": msg_id,
            "threadId": msg_id,
            "labelIds": labels,
            "snippet": text,
            "internalDate": str(int(sent_at.timestamp() * 1000)),
            "payload": {
                "mimeType": "multipart/alternative",
                "headers": [
                    {"name": "From", "value": f"{name} <{sender}>"},
                    {"name": "To", "value": address},
                    {"name": "Subject", "value": subject},
                    {"name": "Date", "value": format_datetime(sent_at)},
                    {"name": "X-Priority", "value": self._rng.choice(PRIORITIES)},
                ],
                "parts": [
                    {
                        "mimeType": "text/plain",
                        "headers": [{"name": "Content-Type", "value": "text/plain; charset=UTF-8"}],
                        "body": {"data": _b64(text)},
                    },
                    {
                        "mimeType": "text/html",
                        "headers": [{"name": "Content-Type", "value": "text/html; charset=UTF-8"}],
                        "body": {"data": _b64(markup)},
                    },
                ],
            },
        }
