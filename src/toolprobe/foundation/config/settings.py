"""Environment-based configuration using pydantic-settings.

Example:
    >>> from toolprobe.foundation.config import get_settings
    >>> settings = get_settings()
    >>> settings.discovery.timeout
    10000

    # Or with environment variables:
    # TOOLPROBE_DISCOVERY_TIMEOUT=15000
    # TOOLPROBE_LOG_LEVEL=DEBUG
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import (
    Field,
    NonNegativeInt,
    PositiveFloat,
    PositiveInt,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DISCOVERY_ARGS: tuple[str, ...] = ("--list-functions", "--discovery")


class DiscoverySettings(BaseSettings):
    """Tool-discovery configuration. Durations named in ms are milliseconds."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLPROBE_DISCOVERY_",
        extra="ignore",
    )

    enabled: bool = True
    timeout: PositiveInt = Field(default=10_000, description="Wall-clock deadline per probe (ms)")
    grace_period: NonNegativeInt = Field(default=500, description="Delay before writing the request (ms)")
    kill_drain: PositiveFloat = Field(default=1.0, description="Seconds to drain pipes after a kill")
    cache_ttl: PositiveFloat | None = Field(
        default=None,
        description="Seconds before a cached result expires; None keeps it until cleared",
    )
    default_args: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DISCOVERY_ARGS),
        description="Arguments used when a server config supplies none",
    )
    max_concurrency: PositiveInt = Field(default=4, description="Parallel probes in resolve_all")

    @computed_field
    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000

    @computed_field
    @property
    def grace_seconds(self) -> float:
        return self.grace_period / 1000


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="TOOLPROBE_LOG_",
        extra="ignore",
    )

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["console", "json", "none"] = "console"

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ToolprobeSettings(BaseSettings):
    """Root settings.

    Loads configuration from environment variables with TOOLPROBE_ prefix.
    Supports nested configuration and .env files.

    Example environment variables:
        TOOLPROBE_DEBUG=true
        TOOLPROBE_DISCOVERY_TIMEOUT=8000
        TOOLPROBE_LOG_FORMAT=json
    """

    model_config = SettingsConfigDict(
        env_prefix="TOOLPROBE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
        validate_default=True,
    )

    debug: bool = Field(default=False, description="Enable debug mode")

    discovery: DiscoverySettings = Field(default_factory=DiscoverySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> ToolprobeSettings:
    """Get the global settings instance (cached)."""
    return ToolprobeSettings()


def clear_settings_cache() -> None:
    """Clear the settings cache so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
