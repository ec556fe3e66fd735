"""Application configuration using Pydantic settings."""

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_VERIFY_TOKEN = "development-verify-token-change-in-production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    # Used to build deep links in agent notifications
    app_base_url: str = "http://localhost:3000"

    # Webhook handshake
    webhook_verify_token: str = DEFAULT_VERIFY_TOKEN

    # Chat relay (outbound agent notifications)
    relay_url: str = ""
    relay_api_key: str = ""
    relay_channel: str = "WHATSAPP"
    relay_timeout_seconds: float = 10.0

    # Phone numbers
    country_calling_code: str = "27"
    national_prefix: str = "0"
    national_number_length: int = 10

    # Email (SendGrid)
    sendgrid_api_key: str = ""
    email_from: str = "noreply@example.com"
    email_from_name: str = "Property Inbox"
    email_timeout_seconds: float = 10.0

    # Firestore
    firestore_emulator_host: str | None = None
    gcp_project_id: str = ""

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


class WebhookConfig(BaseModel):
    """Explicit configuration handed to the webhook gateway at construction."""

    verify_token: str
    app_base_url: str = ""

    @classmethod
    def from_settings(cls, settings: Settings) -> "WebhookConfig":
        return cls(
            verify_token=settings.webhook_verify_token,
            app_base_url=settings.app_base_url,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
