"""Fetch and normalize one mailbox's messages from the configured source."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from loguru import logger

from inboxview.application.ports.mail_source import MailSource, Normalizer
from inboxview.domain.entities.mail import Mail
from inboxview.domain.exceptions import NormalizationError, SourceUnavailable

DEFAULT_FETCH_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class FetchOutcome:
    fetched: int
    mails: list[Mail]
    skipped: list[NormalizationError] = field(default_factory=list)


class RefreshMailboxUseCase:
    """One refresh cycle, minus the merge.

    Flow:
    1. Fetch raw messages for the address (bounded by ``timeout_seconds``)
    2. Normalize each one; a message that fails is skipped and logged
    3. Hand the normalized batch back to the caller for a single merge
    """

    def __init__(
        self,
        source: MailSource,
        normalize: Normalizer,
        timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the refresh use case.

        Args:
            source: Mail source adapter for the provider
            normalize: Turns the source's raw messages into Mail records
            timeout_seconds: Ceiling for the whole fetch; exceeding it
                             fails the cycle with SourceUnavailable
        """
        self.source = source
        self.normalize = normalize
        self.timeout_seconds = timeout_seconds

    async def run(self, address: str) -> FetchOutcome:
        try:
            raws = await asyncio.wait_for(self.source.fetch(address), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise SourceUnavailable(
                f"{self.source.provider} did not answer within {self.timeout_seconds:g}s",
                provider=self.source.provider,
                address=address,
            ) from e

        mails: list[Mail] = []
        skipped: list[NormalizationError] = []
        for raw in raws:
            try:
                mails.append(self.normalize(raw))
            except NormalizationError as e:
                logger.warning(f"Skipping message {raw.message_id} for {address}: {e.message}")
                skipped.append(e)

        logger.info(
            f"Fetched {len(raws)} messages for {address} via {self.source.provider} "
            f"({len(mails)} normalized, {len(skipped)} skipped)"
        )
        return FetchOutcome(fetched=len(raws), mails=mails, skipped=skipped)
