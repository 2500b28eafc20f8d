"""
Application Configuration

Centralized configuration using Pydantic Settings for type-safe
environment variable management with validation.

Credentials and the webhook secret are read from the environment (or the
project-root .env file) and must never be logged.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the directory containing this file, then go up to the project root
_CONFIG_DIR = Path(__file__).parent.parent.parent

TOKEN_PATH = "/auth/v2/token"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables or .env file.
    """

    model_config = SettingsConfigDict(
        env_file=_CONFIG_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Provider credentials (client-credentials grant)
    client_id: str = ""
    client_secret: str = ""

    # Provider endpoints
    api_url: str = "http://localhost:3000"  # token endpoint base
    verification_url: str = "https://verification.didit.me"  # session API base

    # Webhook verification
    webhook_secret_key: str = ""
    webhook_tolerance_seconds: int = 300  # replay window, both directions

    # Token cache
    token_safety_margin_seconds: int = 60  # subtracted from expires_in
    token_request_timeout: float = 10.0

    # Relay routes: let callers without a Bearer header use the cached token
    session_use_cached_token: bool = False

    # Timeout for session / decision relay calls
    upstream_timeout: float = 10.0

    # Server Configuration
    server_host: str = "0.0.0.0"
    server_port: int = 3000
    cors_allowed_origins: str = "*"
    debug: bool = False

    @property
    def token_url(self) -> str:
        return f"{self.api_url.rstrip('/')}{TOKEN_PATH}"

    @property
    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once
    and reused throughout the application lifecycle.
    """
    return Settings()


def get_allowed_origins() -> list[str]:
    """Parse allowed CORS origins from comma-separated string."""
    settings = get_settings()
    if not settings.cors_allowed_origins:
        return []
    return [origin.strip() for origin in settings.cors_allowed_origins.split(",") if origin.strip()]
