# src/inboxview/infrastructure/__init__.py
"""Infrastructure layer - mail providers, logging and configuration."""

from inboxview.infrastructure.email.factory import build_normalizer, build_registry, build_source
from inboxview.infrastructure.log_setup import configure_logging
from inboxview.infrastructure.settings import Settings, get_settings

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    # Logging
    "configure_logging",
    # Mail providers
    "build_source",
    "build_normalizer",
    "build_registry",
]
