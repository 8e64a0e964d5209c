"""In-memory mail collection for a single target address."""

from __future__ import annotations

import threading
from dataclasses import dataclass, replace
from typing import Iterable, Optional

from loguru import logger

from inboxview.domain.entities.mail import Mail


@dataclass(frozen=True)
class MergeResult:
    added: int = 0
    updated: int = 0


class MailboxStore:
    """Owns dedup, read state and ordering for one mailbox.

    Records are keyed by ``Mail.id``. Once a record is present it is never
    removed, its ``timestamp`` never changes and its ``is_read`` flag only
    moves from False to True, and only through ``mark_read``.
    """

    def __init__(self, address: str) -> None:
        self.address = address
        self._mails: dict[str, Mail] = {}
        self._lock = threading.Lock()

    def merge(self, new_mails: Iterable[Mail]) -> MergeResult:
        """Insert unknown mails and refresh known ones with their latest fields.

        A known mail keeps its stored ``timestamp`` and ``is_read``.
        """
        added = 0
        updated = 0
        with self._lock:
            for mail in new_mails:
                current = self._mails.get(mail.id)
                if current is None:
                    self._mails[mail.id] = mail
                    added += 1
                    continue

                fresh = replace(
                    mail,
                    timestamp=current.timestamp,
                    is_read=current.is_read,
                )
                if fresh != current:
                    self._mails[mail.id] = fresh
                    updated += 1

        if added or updated:
            logger.debug(f"Mailbox {self.address}: merged {added} new, {updated} updated")
        return MergeResult(added=added, updated=updated)

    def mark_read(self, mail_id: str) -> bool:
        """Mark a mail as read. Returns False when absent or already read."""
        with self._lock:
            current = self._mails.get(mail_id)
            if current is None or current.is_read:
                return False
            self._mails[mail_id] = replace(current, is_read=True)
        logger.debug(f"Mailbox {self.address}: marked {mail_id} as read")
        return True

    def get(self, mail_id: str) -> Optional[Mail]:
        return self._mails.get(mail_id)

    def all(self) -> list[Mail]:
        with self._lock:
            mails = list(self._mails.values())
        return sorted(mails, key=lambda m: m.sort_key)

    def __len__(self) -> int:
        return len(self._mails)

    def __contains__(self, mail_id: object) -> bool:
        return mail_id in self._mails
