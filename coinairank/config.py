"""
Configuration management using Pydantic for validation.

Supports loading from environment variables and .env files
with full validation and type coercion. Settings are read once
at startup and treated as immutable afterwards.
"""

from __future__ import annotations

import os
import re
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from coinairank.constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_HOST,
    DEFAULT_LISTING_TABLE,
    DEFAULT_LOG_FILE,
    DEFAULT_MAX_PAGE_SIZE,
    DEFAULT_POOL_MAX_SIZE,
    DEFAULT_POOL_MIN_SIZE,
    DEFAULT_PORT,
)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


class DatabaseSettings(BaseModel):
    """Postgres connection configuration."""

    dsn: str = Field(..., description="Postgres connection string")
    pool_min_size: int = Field(DEFAULT_POOL_MIN_SIZE, ge=1, le=50)
    pool_max_size: int = Field(DEFAULT_POOL_MAX_SIZE, ge=1, le=100)
    command_timeout: float = Field(
        DEFAULT_COMMAND_TIMEOUT,
        gt=0,
        le=300,
        description="Seconds before a single statement is abandoned",
    )

    @field_validator("dsn")
    @classmethod
    def validate_dsn(cls, v: str) -> str:
        if not v.startswith(("postgres://", "postgresql://")):
            raise ValueError("DSN must start with postgres:// or postgresql://")
        return v


class ListingSettings(BaseModel):
    """Listing endpoint configuration."""

    table: str = Field(DEFAULT_LISTING_TABLE, description="Table of scored tokens")
    max_page_size: int = Field(
        DEFAULT_MAX_PAGE_SIZE,
        ge=1,
        le=1000,
        description="Upper bound applied to the limit parameter",
    )

    @field_validator("table")
    @classmethod
    def validate_table(cls, v: str) -> str:
        # Interpolated into SQL, so only plain identifiers are accepted
        if not _IDENTIFIER_RE.match(v):
            raise ValueError(f"Invalid table name: {v!r}")
        return v


class ServerSettings(BaseModel):
    """HTTP server configuration."""

    host: str = Field(DEFAULT_HOST)
    port: int = Field(DEFAULT_PORT, ge=1, le=65535)


class Settings(BaseSettings):
    """
    Main application settings.

    Configuration is loaded from environment variables:
    - DATABASE_URL and DB_* for the datastore
    - LISTING_TABLE / MAX_PAGE_SIZE for the listing endpoint
    - SERVER_* for the HTTP server

    You can also use a .env file in the working directory.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Datastore (required unless serving fixtures)
    database_url: Optional[str] = Field(None, alias="DATABASE_URL")
    db_pool_min_size: int = Field(DEFAULT_POOL_MIN_SIZE, alias="DB_POOL_MIN_SIZE")
    db_pool_max_size: int = Field(DEFAULT_POOL_MAX_SIZE, alias="DB_POOL_MAX_SIZE")
    db_command_timeout: float = Field(DEFAULT_COMMAND_TIMEOUT, alias="DB_COMMAND_TIMEOUT")

    # Listing
    listing_table: str = Field(DEFAULT_LISTING_TABLE, alias="LISTING_TABLE")
    max_page_size: int = Field(DEFAULT_MAX_PAGE_SIZE, alias="MAX_PAGE_SIZE")

    # Server
    server_host: str = Field(DEFAULT_HOST, alias="SERVER_HOST")
    server_port: int = Field(DEFAULT_PORT, alias="SERVER_PORT")

    # Paths
    log_file: str = Field(DEFAULT_LOG_FILE, alias="LOG_FILE")

    @property
    def database(self) -> DatabaseSettings:
        """
        Get datastore settings as a structured object.

        Raises:
            ValidationError: If DATABASE_URL is missing or invalid
        """
        return DatabaseSettings(
            dsn=self.database_url or "",
            pool_min_size=self.db_pool_min_size,
            pool_max_size=self.db_pool_max_size,
            command_timeout=self.db_command_timeout,
        )

    @property
    def listing(self) -> ListingSettings:
        """Get listing settings as a structured object."""
        return ListingSettings(
            table=self.listing_table,
            max_page_size=self.max_page_size,
        )

    @property
    def server(self) -> ServerSettings:
        """Get server settings as a structured object."""
        return ServerSettings(host=self.server_host, port=self.server_port)

    @property
    def log_path(self) -> Path:
        return Path(self.log_file)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Settings are loaded once and cached for the life of the process.
    Use clear_settings_cache() to reload.

    Returns:
        Settings: Application settings instance

    Raises:
        ValidationError: If settings are invalid
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache to force reload."""
    get_settings.cache_clear()


def validate_environment(require_database: bool = True) -> tuple[bool, list[str]]:
    """
    Validate that all required environment variables are set.

    Args:
        require_database: Whether DATABASE_URL must be present

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    from dotenv import load_dotenv
    load_dotenv()

    errors: list[str] = []

    if require_database:
        dsn = os.environ.get("DATABASE_URL", "")
        if not dsn:
            errors.append("Missing required environment variable: DATABASE_URL (Postgres connection string)")
        elif not dsn.startswith(("postgres://", "postgresql://")):
            errors.append("DATABASE_URL must start with postgres:// or postgresql://")

    max_page_size = os.environ.get("MAX_PAGE_SIZE", "")
    if max_page_size and not max_page_size.isdigit():
        errors.append("MAX_PAGE_SIZE must be a positive integer")

    return len(errors) == 0, errors
