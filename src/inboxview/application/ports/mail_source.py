from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

from inboxview.domain.entities.mail import Mail


@dataclass(frozen=True)
class RawMessage:
    provider: str
    account: str  # target address the message was fetched for
    message_id: str
    payload: Mapping[str, Any]  # provider detail record, shape depends on provider


class MailSource(Protocol):
    provider: str

    async def fetch(self, address: str) -> list[RawMessage]: ...


class Normalizer(Protocol):
    def __call__(self, raw: RawMessage) -> Mail: ...
