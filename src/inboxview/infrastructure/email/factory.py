"""Mail source factory: builds the Gmail, IMAP or demo source from settings."""

from __future__ import annotations

from typing import Callable

from loguru import logger

from inboxview.application.mailbox.registry import MailboxRegistry
from inboxview.application.ports.mail_source import MailSource, Normalizer
from inboxview.infrastructure.email.common import CategoryMapper
from inboxview.infrastructure.settings import Settings, get_settings

SUPPORTED_PROVIDERS = ("gmail", "imap", "demo")


def _gmail_source(settings: Settings) -> MailSource:
    from inboxview.infrastructure.email.providers.gmail.client import GmailConfig, GmailMailSource

    if not settings.gmail_configured:
        raise ValueError(
            "Gmail provider needs GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REFRESH_TOKEN"
        )
    return GmailMailSource(
        GmailConfig(
            client_id=settings.google_client_id or "",
            client_secret=settings.google_client_secret.get_secret_value(),
            refresh_token=settings.google_refresh_token.get_secret_value(),
            token_uri=settings.google_token_uri,
            user_id=settings.gmail_user_id,
            max_results=settings.max_messages,
        )
    )


def _imap_source(settings: Settings) -> MailSource:
    from inboxview.infrastructure.email.providers.imap.client import ImapConfig, ImapMailSource

    if not settings.imap_username or settings.imap_password is None:
        raise ValueError("IMAP provider needs IMAP_USERNAME and IMAP_PASSWORD")
    return ImapMailSource(
        ImapConfig(
            host=settings.imap_host,
            port=settings.imap_port,
            username=settings.imap_username,
            password=settings.imap_password.get_secret_value(),
            folder=settings.imap_folder,
            max_messages=settings.max_messages,
            timeout_seconds=settings.fetch_timeout_seconds,
        )
    )


def _demo_source(settings: Settings) -> MailSource:
    from inboxview.infrastructure.email.providers.demo.client import DemoMailSource

    return DemoMailSource(seed=settings.demo_seed, max_messages=settings.max_messages)


_BUILDERS: dict[str, Callable[[Settings], MailSource]] = {
    "gmail": _gmail_source,
    "imap": _imap_source,
    "demo": _demo_source,
}


def build_source(settings: Settings | None = None) -> MailSource:
    """Create a fresh source instance for the configured provider.

    Raises:
        ValueError: If the provider is unsupported or missing credentials.
    """
    settings = settings or get_settings()
    builder = _BUILDERS.get(settings.mail_provider)
    if builder is None:
        raise ValueError(f"Unsupported provider: {settings.mail_provider}. Supported: {list(SUPPORTED_PROVIDERS)}")
    return builder(settings)


def build_normalizer(settings: Settings | None = None) -> Normalizer:
    """Normalizer matching the configured provider's raw format (demo is Gmail-shaped)."""
    settings = settings or get_settings()
    categories = CategoryMapper(settings.category_labels)
    if settings.mail_provider == "imap":
        from inboxview.infrastructure.email.providers.imap.mapper import Rfc822Normalizer

        return Rfc822Normalizer(categories)

    from inboxview.infrastructure.email.providers.gmail.mapper import GmailNormalizer

    return GmailNormalizer(categories)


def build_registry(settings: Settings | None = None) -> MailboxRegistry:
    settings = settings or get_settings()
    # fail fast on bad credentials instead of on the first query
    build_source(settings)
    logger.info(f"Mail provider: {settings.mail_provider} (max {settings.max_messages} messages per fetch)")
    return MailboxRegistry(
        source_factory=lambda: build_source(settings),
        normalize=build_normalizer(settings),
        refresh_interval_seconds=settings.refresh_interval_seconds,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        auto_refresh=settings.auto_refresh,
    )
