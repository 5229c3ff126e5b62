"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

Refresh-token signing: JWT_REFRESH_SECRET is optional; when it is unset the
refresh tokens are signed with JWT_SECRET (see JWTSettings.refresh_secret).
"""

from __future__ import annotations

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "marketplace-auth"


class JWTSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    jwt_issuer: str = "marketplace-auth"
    jwt_audience: str = "marketplace-auth.api"
    access_token_ttl_seconds: int = 900
    refresh_token_ttl_seconds: int = 604800

    jwt_secret: str = ""
    # Falls back to jwt_secret when empty
    jwt_refresh_secret: str = ""

    @property
    def refresh_secret(self) -> str:
        return self.jwt_refresh_secret or self.jwt_secret


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    email_host: str = ""
    email_port: int = 587
    email_username: str = ""
    email_password: str = ""
    email_use_tls: bool = True
    email_from: str = "noreply@authsystem.com"
    email_from_name: str = "Auth System"

    @property
    def is_configured(self) -> bool:
        return bool(self.email_host)


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "Auth System"

    # Base URL of this API (verification links point here) and of the
    # frontend (reset links point there)
    api_url: str = "http://localhost:8000"
    frontend_url: str = "http://localhost:5173"

    cors_origins: list[str] = ["http://localhost:5173"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    jwt: Optional[JWTSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        # Populate sub-configs from the same env/dotenv source
        if self.db is None:
            self.db = DatabaseSettings()
        if self.jwt is None:
            self.jwt = JWTSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def cookie_secure(self) -> bool:
        return self.is_production


class ClientSettings(BaseSettings):
    """Settings for the client-side session controller."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    auth_api_url: str = "http://localhost:8000"
    auth_client_timeout: float = 10.0
    # Where JsonFileTokenStorage keeps the token pair
    auth_token_file: str = ".auth_tokens.json"
