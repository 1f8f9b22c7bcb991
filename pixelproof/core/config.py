"""
Application configuration models and helpers.

Settings are read once per process and injected into the cipher, the Figma
clients and the OAuth coordinator; nothing below the dependency layer reads
the environment directly.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing or malformed."""


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class FigmaSettings(BaseSettings):
    """OAuth application and REST API settings for Figma."""

    model_config = SettingsConfigDict(extra="ignore")

    client_id: str = Field(..., validation_alias="FIGMA_CLIENT_ID", min_length=1)
    client_secret: str = Field(
        ..., validation_alias="FIGMA_CLIENT_SECRET", min_length=1
    )
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="FIGMA_REDIRECT_URI")
    scope: str = Field(
        "file_content:read",
        validation_alias="FIGMA_OAUTH_SCOPE",
        description="Scopes requested during authorization (variables and styles included).",
    )
    authorization_url: str = Field(
        "https://www.figma.com/oauth", validation_alias="FIGMA_AUTH_URL"
    )
    token_url: str = Field(
        "https://www.figma.com/api/oauth/token", validation_alias="FIGMA_TOKEN_URL"
    )
    api_base_url: str = Field(
        "https://api.figma.com", validation_alias="FIGMA_API_BASE_URL"
    )
    request_timeout_seconds: float = Field(
        20.0,
        validation_alias="FIGMA_REQUEST_TIMEOUT",
        gt=0,
        description="Per-request timeout for calls to figma.com.",
    )


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    encryption_key: Optional[str] = Field(
        None,
        validation_alias="ENCRYPTION_KEY",
        description="Hex encoded 32-byte key used to encrypt stored OAuth tokens.",
    )

    @field_validator("encryption_key", mode="before")
    @classmethod
    def _validate_key(cls, value: Optional[str]) -> Optional[str]:
        """Reject keys that are not 64 hex characters; blank means unset."""
        if value is None:
            return None
        value = str(value).strip()
        if not value:
            return None
        try:
            raw = bytes.fromhex(value)
        except ValueError as exc:
            raise ValueError("ENCRYPTION_KEY must be a hex string.") from exc
        if len(raw) != 32:
            raise ValueError(
                f"ENCRYPTION_KEY must be 32 bytes (64 hex characters). Got {len(raw)} bytes."
            )
        return value


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    state_ttl_seconds: int = Field(600, validation_alias="OAUTH_STATE_TTL", gt=0)
    csrf_cookie_name: str = "oauth_csrf"
    return_to_cookie_name: str = "oauth_return_to"
    default_return_path: str = Field(
        "/projects", validation_alias="OAUTH_DEFAULT_RETURN_PATH"
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    database_path: str = Field(
        "data/pixelproof.db",
        validation_alias="PIXELPROOF_DB_PATH",
        description="SQLite database holding projects, credentials and snapshots.",
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    figma: FigmaSettings = Field(default_factory=FigmaSettings)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "ConfigurationError",
    "FigmaSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
