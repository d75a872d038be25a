"""Configuration management using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Agency settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AGENCY_",
        case_sensitive=False,
        extra="ignore",
    )

    log_mode: Literal["quiet", "verbose", "log"] = Field(
        default="verbose",
        description="Journal mode: drop events, show them, or buffer them into a report",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_file: str | None = Field(
        default=None,
        description="Optional rotating log file for scheduler internals",
    )
    report_file: str | None = Field(
        default=None,
        description="Default destination of the journal report in log mode",
    )
    report_dir: str = Field(
        default=".",
        description="Directory for the fallback journal report",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings instance loaded from environment.

    Example:
        >>> settings = get_settings()
        >>> settings.log_mode
        'verbose'
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
