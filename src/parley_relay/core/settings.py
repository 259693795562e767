"""Application settings and configuration.

This module defines all configuration options for the Parley Relay service.
Settings are loaded from environment variables (or an ``.env`` file) with
sensible defaults. The module-level ``settings`` instance is only read at
startup; components receive their configuration through the service context.
"""

import secrets
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PasswordHashProfile = Literal["min", "interactive", "moderate", "sensitive"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Every field can be overridden with the upper-cased environment variable of
    the same name, e.g. ``DATABASE_URL`` or ``MESSAGE_MAX_LENGTH``.
    """

    # Application metadata
    app_name: str = Field(default="Parley Relay", description="Human-friendly service name")
    app_version: str = Field(default="0.1.0", description="Reported API version")
    debug: bool = Field(default=False, description="Enable auto-reload and verbose errors")
    host: str = Field(default="127.0.0.1", description="Host to bind the server")
    port: int = Field(default=8000, description="Port to bind the server")

    # Security and authentication
    secret_key: str = Field(
        default_factory=lambda: secrets.token_urlsafe(32),
        description="Secret used to sign session tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        ge=1,
        description="Session token lifetime in minutes",
    )
    password_hash_profile: PasswordHashProfile = Field(
        default="interactive",
        description="Argon2id cost profile used for account secrets",
    )

    # Database configuration
    database_url: str = Field(default="sqlite:///./parley.db", description="SQLAlchemy URL")
    sql_debug: bool = Field(default=False, description="Echo SQL statements")
    auto_create_tables: bool = Field(
        default=True,
        description="Create missing tables at startup (use Alembic in production)",
    )

    # Delivery and storage bounds
    storage_timeout_seconds: float = Field(default=5.0, gt=0, description="Durable write bound")
    push_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-message push bound")
    subscription_queue_size: int = Field(
        default=1000,
        ge=1,
        description="Live messages buffered per subscriber before it is dropped",
    )
    read_batch_size: int = Field(default=200, ge=1, description="Rows fetched per log page")
    read_page_max: int = Field(default=200, ge=1, description="Largest page served over HTTP")
    message_max_length: int = Field(default=500, ge=1, description="Maximum message length")

    # Object store for avatars and attachments
    media_root: str = Field(default="./media", description="Directory holding uploaded media")
    media_base_url: str = Field(default="/api/v1/media", description="URL prefix for media")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024, ge=1, description="Upload limit")

    # Logging
    log_level: str = Field(default="INFO", description="Log level for parley_relay loggers")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"])
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: list[str] = Field(default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default=["*"])

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalise and check the configured log level."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("media_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def is_sqlite(self) -> bool:
        """Return True when the configured database is SQLite."""
        return self.database_url.startswith("sqlite")


settings = Settings()
