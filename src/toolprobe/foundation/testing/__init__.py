"""Testing utilities for discovery code."""

from .mock import Launch, SpyLauncher

__all__ = ["Launch", "SpyLauncher"]
