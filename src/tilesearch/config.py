"""Centralized configuration for tilesearch using Pydantic Settings."""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from ``TILESEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TILESEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index layout
    shard_level: int = Field(
        default=2,
        ge=1,
        le=6,
        description="Shard level; ids are routed to shard id mod 100**level",
    )
    field_delimiter: str = Field(default=",", description="Separator between searchable sub-fields")

    # Indexing driver
    page_limit: int = Field(default=10000, ge=1, description="Documents requested per indexable page")

    # Storage
    sqlite_path: str = Field(default="tilesearch.db", description="SQLite database used by the SQLite store")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    @field_validator("field_delimiter")
    @classmethod
    def _check_delimiter(cls, value: str) -> str:
        if not value:
            raise ValueError("field_delimiter must not be empty")
        return value

    @field_validator("sqlite_path")
    @classmethod
    def _check_sqlite_path(cls, value: str) -> str:
        # Each worker thread opens its own connection, so the database must live in a file.
        if value.strip() in {"", ":memory:"}:
            raise ValueError("sqlite_path must name a database file")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warning", "error", "critical"}:
            raise ValueError(f"Unsupported log level: {value}")
        return normalized
