"""Shared fixtures: isolated settings, collecting sinks, fast discovery settings."""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from toolprobe.discovery import ToolDiscovery
from toolprobe.foundation.config import DiscoverySettings, clear_settings_cache
from toolprobe.foundation.testing import SpyLauncher
from toolprobe.runtime.observability import CollectingSink


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep TOOLPROBE_* from the developer's shell out of every test."""
    for key in list(os.environ):
        if key.startswith("TOOLPROBE_"):
            monkeypatch.delenv(key)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def fast_settings() -> DiscoverySettings:
    return DiscoverySettings(timeout=3000, grace_period=50, kill_drain=0.5)


@pytest.fixture
def spy(fast_settings: DiscoverySettings) -> SpyLauncher:
    return SpyLauncher(default_args=fast_settings.default_args)


@pytest.fixture
def engine(fast_settings: DiscoverySettings, sink: CollectingSink, spy: SpyLauncher) -> ToolDiscovery:
    return ToolDiscovery(fast_settings, sink=sink, launcher=spy)
