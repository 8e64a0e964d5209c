from __future__ import annotations
import asyncio
import imaplib
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from loguru import logger

from inboxview.application.ports.mail_source import MailSource, RawMessage
from inboxview.domain.addresses import normalize_address
from inboxview.domain.exceptions import SourceUnavailable

FETCH_ITEMS = "(BODY.PEEK[] FLAGS INTERNALDATE)"


@dataclass
class ImapConfig:
    host: str
    username: str
    password: str
    port: int = 993
    folder: str = "INBOX"
    max_messages: int = 50
    timeout_seconds: float = 15.0


def _parse_fetch_item(item: tuple[bytes, bytes]) -> tuple[list[str], Optional[datetime], bytes]:
    """Split one ``UID FETCH`` response tuple into (flags, internal date, rfc822)."""
    envelope, body = item
    flags = [f.decode() for f in imaplib.ParseFlags(envelope)]
    internal = imaplib.Internaldate2tuple(envelope)
    internal_date = None
    if internal is not None:
        internal_date = datetime.fromtimestamp(time.mktime(internal), tz=timezone.utc)
    return flags, internal_date, body


class ImapMailSource(MailSource):
    """Read-only IMAP source. Uses BODY.PEEK so fetching never sets \\Seen."""

    provider = "imap"

    def __init__(self, cfg: ImapConfig) -> None:
        self.cfg = cfg

    def _connect(self) -> imaplib.IMAP4_SSL:
        conn = imaplib.IMAP4_SSL(self.cfg.host, self.cfg.port, timeout=self.cfg.timeout_seconds)
        conn.login(self.cfg.username, self.cfg.password)
        return conn

    async def fetch(self, address: str) -> list[RawMessage]:
        address = normalize_address(address)
        try:
            return await asyncio.to_thread(self._fetch_sync, address)
        except (imaplib.IMAP4.error, OSError) as e:
            raise SourceUnavailable(
                f"Failed to fetch emails over IMAP: {e}",
                provider=self.provider,
                address=address,
            ) from e

    def _fetch_sync(self, address: str) -> list[RawMessage]:
        conn = self._connect()
        try:
            typ, _ = conn.select(self.cfg.folder, readonly=True)
            if typ != "OK":
                raise SourceUnavailable(
                    f"Failed to select folder {self.cfg.folder}", provider=self.provider, address=address
                )

            typ, uids_data = conn.uid("SEARCH", None, "TO", f'"{address}"')
            if typ != "OK":
                raise SourceUnavailable("UID SEARCH failed", provider=self.provider, address=address)

            uids: list[int] = []
            if uids_data and uids_data[0]:
                uids = sorted(int(x) for x in uids_data[0].split())
            # highest UIDs are the newest arrivals
            uids = list(reversed(uids[-self.cfg.max_messages :]))
            logger.info(f"Found {len(uids)} messages to {address} in {self.cfg.folder}")

            results: list[RawMessage] = []
            for uid in uids:
                typ, msg_data = conn.uid("FETCH", str(uid), FETCH_ITEMS)
                item = next((d for d in msg_data or [] if isinstance(d, tuple)), None)
                if typ != "OK" or item is None:
                    raise SourceUnavailable(f"UID FETCH {uid} failed", provider=self.provider, address=address)

                flags, internal_date, rfc822_bytes = _parse_fetch_item(item)
                payload: dict[str, Any] = {
                    "uid": uid,
                    "rfc822": rfc822_bytes,
                    "flags": flags,
                    "internal_date": internal_date,
                    "folder": self.cfg.folder,
                }
                results.append(
                    RawMessage(provider=self.provider, account=address, message_id=str(uid), payload=payload)
                )
            return results
        finally:
            self._disconnect(conn)

    @staticmethod
    def _disconnect(conn: imaplib.IMAP4_SSL) -> None:
        try:
            conn.logout()
        except (imaplib.IMAP4.error, OSError) as e:
            logger.debug(f"IMAP logout failed: {e}")
