"""Configuration management using pydantic-settings."""

from .settings import (
    DEFAULT_DISCOVERY_ARGS,
    DiscoverySettings,
    LoggingSettings,
    ToolprobeSettings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "DEFAULT_DISCOVERY_ARGS",
    "DiscoverySettings",
    "LoggingSettings",
    "ToolprobeSettings",
    "clear_settings_cache",
    "get_settings",
]
