"""Configuration management for Mail Provenance.

This module handles application configuration using Pydantic settings.
Configuration can be loaded from environment variables or .env files.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with
    the MAIL_PROVENANCE_ prefix (e.g., MAIL_PROVENANCE_IMAP_HOST).
    """

    model_config = SettingsConfigDict(
        env_prefix="MAIL_PROVENANCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # IMAP Configuration
    imap_host: str | None = Field(
        default=None,
        description="IMAP server host name",
    )
    imap_port: int = Field(
        default=993,
        description="IMAP server port (implicit TLS)",
    )
    imap_username: str | None = Field(
        default=None,
        description="Mailbox login; also shown to users as the test address",
    )
    imap_password: SecretStr | None = Field(
        default=None,
        description="Mailbox password or app password",
    )
    imap_mailbox: str = Field(
        default="INBOX",
        description="Mailbox examined for unread messages",
    )
    imap_allow_self_signed: bool = Field(
        default=False,
        description=(
            "Skip TLS certificate and hostname verification. Only enable this for "
            "servers with self-signed certificates you trust."
        ),
    )
    imap_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Socket timeout in seconds for connect, search and fetch",
    )

    # Record store configuration
    db_path: Path = Field(
        default=Path("mail_provenance.sqlite3"),
        description="Path to the SQLite database storing analysed email records",
    )
    history_limit: int = Field(
        default=20,
        ge=1,
        description="Number of records returned by the history endpoint",
    )

    # HTTP configuration
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173"],
        description="Origins allowed to call the HTTP API",
    )

    # Application Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings: Application settings instance.
    """
    return Settings()
