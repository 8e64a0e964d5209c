"""Application settings using Pydantic Settings for configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Provider label -> category. Gmail system labels plus common user labels.
DEFAULT_CATEGORY_LABELS: dict[str, str] = {
    "CATEGORY_PERSONAL": "personal",
    "CATEGORY_SOCIAL": "social",
    "CATEGORY_PROMOTIONS": "promotion",
    "CATEGORY_UPDATES": "updates",
    "CATEGORY_FORUMS": "forums",
    "WORK": "work",
    "PERSONAL": "personal",
    "PROMOTIONS": "promotion",
    "SOCIAL": "social",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Inbox View"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 3001
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Mail source
    mail_provider: Literal["gmail", "imap", "demo"] = "demo"
    max_messages: int = Field(default=50, ge=1, le=500)
    fetch_timeout_seconds: float = Field(default=15.0, gt=0)
    refresh_interval_seconds: float = Field(default=30.0, gt=0)
    auto_refresh: bool = True
    local_timezone: str | None = None
    category_labels: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_CATEGORY_LABELS))

    # Gmail API (OAuth refresh-token flow, credentials issued out of band)
    google_client_id: str | None = None
    google_client_secret: SecretStr | None = None
    google_refresh_token: SecretStr | None = None
    google_token_uri: str = "https://oauth2.googleapis.com/token"
    gmail_user_id: str = "me"

    # IMAP
    imap_host: str = "imap.gmail.com"
    imap_port: int = 993
    imap_username: str | None = None
    imap_password: SecretStr | None = None
    imap_folder: str = "INBOX"

    # Demo source
    demo_seed: int | None = None

    @computed_field
    @property
    def gmail_configured(self) -> bool:
        """Whether enough Gmail credentials are present to build a client."""
        return bool(self.google_client_id and self.google_client_secret and self.google_refresh_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
