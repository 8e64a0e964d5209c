"""Gmail API mail source: search by recipient, then batch-get full messages."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import Error as GoogleApiClientError
import httplib2
from loguru import logger

from inboxview.application.ports.mail_source import MailSource, RawMessage
from inboxview.domain.addresses import normalize_address
from inboxview.domain.exceptions import SourceUnavailable

BATCH_SIZE = 100
SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]


@dataclass
class GmailConfig:
    client_id: str
    client_secret: str
    refresh_token: str
    token_uri: str = "https://oauth2.googleapis.com/token"
    user_id: str = "me"
    max_results: int = 50


class GmailMailSource(MailSource):
    provider = "gmail"

    def __init__(self, cfg: GmailConfig, service: Optional[Any] = None) -> None:
        self.cfg = cfg
        self._service = service

    def _get_service(self) -> Any:
        if self._service is None:
            creds = Credentials(
                token=None,
                refresh_token=self.cfg.refresh_token,
                token_uri=self.cfg.token_uri,
                client_id=self.cfg.client_id,
                client_secret=self.cfg.client_secret,
                scopes=SCOPES,
            )
            self._service = build("gmail", "v1", credentials=creds, cache_discovery=False)
            logger.info("Connected to Gmail API")
        return self._service

    async def fetch(self, address: str) -> list[RawMessage]:
        address = normalize_address(address)
        try:
            return await asyncio.to_thread(self._fetch_sync, address)
        except (GoogleApiClientError, httplib2.HttpLib2Error, GoogleAuthError, OSError) as e:
            raise SourceUnavailable(
                f"Failed to fetch emails from Gmail: {e}",
                provider=self.provider,
                address=address,
            ) from e

    def _fetch_sync(self, address: str) -> list[RawMessage]:
        service = self._get_service()
        response = (
            service.users()
            .messages()
            .list(userId=self.cfg.user_id, q=f"to:{address}", maxResults=self.cfg.max_results)
            .execute()
        )
        # Gmail lists newest first; anything past max_results is dropped
        message_ids = [m["id"] for m in response.get("messages", [])][: self.cfg.max_results]
        if not message_ids:
            return []

        details: dict[str, dict[str, Any]] = {}
        for start in range(0, len(message_ids), BATCH_SIZE):
            details.update(self._get_batch(service, message_ids[start : start + BATCH_SIZE]))

        logger.debug(f"Gmail returned {len(details)} messages for {address}")
        return [
            RawMessage(provider=self.provider, account=address, message_id=msg_id, payload=details[msg_id])
            for msg_id in message_ids
        ]

    def _get_batch(self, service: Any, message_ids: list[str]) -> dict[str, dict[str, Any]]:
        results: dict[str, dict[str, Any]] = {}
        failures: dict[str, Exception] = {}

        def on_response(request_id: str, response: dict[str, Any], exception: Optional[Exception]) -> None:
            if exception is not None:
                failures[request_id] = exception
            else:
                results[request_id] = response

        batch = service.new_batch_http_request(callback=on_response)
        for msg_id in message_ids:
            batch.add(
                service.users().messages().get(userId=self.cfg.user_id, id=msg_id, format="full"),
                request_id=msg_id,
            )
        batch.execute()

        missing = [msg_id for msg_id in message_ids if msg_id not in results and msg_id not in failures]
        if failures or missing:
            first = next(iter(failures.values()), None)
            raise SourceUnavailable(
                f"Gmail detail fetch failed for {len(failures) + len(missing)} of {len(message_ids)} messages"
                + (f": {first}" if first else ""),
                provider=self.provider,
            )
        return results
