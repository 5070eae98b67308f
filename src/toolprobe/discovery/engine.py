"""Tool discovery engine.

Launches a configured server in discovery mode, asks it for its tools over
stdio, and scrapes tool names from whatever comes back. Results are cached per
server id, including empty ones, so a server is spawned at most once until
the cache is cleared.

discover_tools never raises. Every failure becomes an empty list plus a
diagnostic, which lets fallbacks (known-tools mapping, AI prediction) compose
on top of it without guarding.

Example:
    >>> engine = ToolDiscovery()
    >>> await engine.discover_tools(
    ...     "github.com/Garoth/sleep-mcp",
    ...     {"command": "npx", "args": ["-y", "sleep-mcp"]},
    ... )
    ['sleep']
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from toolprobe.cache import DiscoveryCache, MemoryCache
from toolprobe.foundation.config import DiscoverySettings, get_settings
from toolprobe.foundation.errors import DiscoveryError, Err, ErrorCode, ErrorTrace, Ok, Result, trace, trace_from_exc
from toolprobe.runtime.observability import DiagnosticSink, Emitter, LoggerSink, get_logger

from .exchange import run_exchange
from .extraction import extract_from_streams
from .launcher import Launcher
from .models import DiscoveryRequest, ServerConfig
from .session import ProbeOutcome


@dataclass(slots=True)
class _ProbeLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class ToolDiscovery:
    """Discovers the tools an MCP server exposes by probing its process.

    Args:
        settings: Discovery settings; defaults to the global TOOLPROBE_DISCOVERY_* settings
        cache: Result cache; defaults to a MemoryCache honouring settings.cache_ttl
        launcher: Process launcher; swap in a SpyLauncher for tests
        sink: Where diagnostics go; defaults to the structured logger
    """

    __slots__ = ("_settings", "_cache", "_launcher", "_emit", "_locks")

    def __init__(
        self,
        settings: DiscoverySettings | None = None,
        *,
        cache: DiscoveryCache | None = None,
        launcher: Launcher | None = None,
        sink: DiagnosticSink | None = None,
    ) -> None:
        self._settings = settings or get_settings().discovery
        self._cache = cache if cache is not None else MemoryCache(ttl=self._settings.cache_ttl)
        self._launcher = launcher or Launcher(self._settings.default_args)
        self._emit = Emitter(sink or LoggerSink(get_logger("toolprobe.discovery")))
        self._locks: dict[str, _ProbeLock] = {}

    @property
    def settings(self) -> DiscoverySettings:
        return self._settings

    @property
    def cache(self) -> DiscoveryCache:
        return self._cache

    def is_cached(self, server_id: str) -> bool:
        return server_id in self._cache

    async def discover_tools(self, server_id: str, server_config: ServerConfig | Mapping[str, Any]) -> list[str]:
        """Tool names exposed by the server; [] when none were found or anything failed."""
        emit = self._emit.bind(server=server_id)
        if (cached := self._cached(server_id, emit)) is not None:
            return cached

        # One probe per id: concurrent callers queue here and then hit the cache
        async with self._exclusive(server_id):
            if (cached := self._cached(server_id, emit)) is not None:
                return cached
            try:
                emit.info(f"Discovering tools for {server_id}")
                request = DiscoveryRequest.from_config(server_id, server_config)
                probed = await self._probe(request, emit)
                if probed.is_err():
                    self._report_failure(server_id, probed.unwrap_err(), emit)
                    return []
                outcome = probed.unwrap()
                tools = extract_from_streams(outcome.stdout, outcome.stderr, hint=server_id, emit=emit)
            except DiscoveryError as e:
                self._report_failure(server_id, e.trace, emit)
                return []
            except Exception as e:  # noqa: BLE001 - discover_tools is total
                self._report_failure(server_id, trace_from_exc(e, code=ErrorCode.UNKNOWN), emit)
                return []

            self._cache.set(server_id, tools)
            if tools:
                emit.debug(f"Discovered {len(tools)} tools for {server_id}: {', '.join(tools)}")
            else:
                emit.info(f"No tools discovered for {server_id}", code=ErrorCode.NO_TOOLS)
            return list(tools)

    async def probe(self, request: DiscoveryRequest) -> Result[ProbeOutcome, ErrorTrace]:
        """Run one uncached exchange and return the raw captured output.

        Err(SPAWN_FAILED) when the launch is refused or the shell reports the command never ran.
        """
        return await self._probe(request, self._emit.bind(server=request.server_id))

    def clear_cache(self) -> None:
        """Forget every cached result; the next call for any server spawns again."""
        self._cache.clear()
        self._emit.info("Tool discovery cache cleared")

    def invalidate(self, server_id: str) -> bool:
        """Forget one server's cached result."""
        return self._cache.invalidate(server_id)

    async def _probe(self, request: DiscoveryRequest, emit: Emitter) -> Result[ProbeOutcome, ErrorTrace]:
        emit.debug(f"Running command: {self._launcher.command_line(request)}")
        launched = await self._launcher.launch(request)
        if launched.is_err():
            return launched
        session = launched.unwrap()
        await run_exchange(
            session,
            timeout=self._settings.timeout_seconds,
            grace=self._settings.grace_seconds,
            drain=self._settings.kill_drain,
            emit=emit.bind(pid=session.pid),
        )
        outcome = session.snapshot()
        if outcome.never_ran:
            reason = outcome.stderr.strip().splitlines()[-1] if outcome.stderr.strip() else "command not executable"
            return Err(trace(
                f"Command could not be executed (exit code {outcome.return_code}): {reason}",
                code=ErrorCode.SPAWN_FAILED,
            ).with_operation(f"launch:{request.server_id}"))
        return Ok(outcome)

    @asynccontextmanager
    async def _exclusive(self, server_id: str) -> AsyncIterator[None]:
        """Hold the server's probe lock; the entry is dropped once nobody holds or awaits it."""
        slot = self._locks.setdefault(server_id, _ProbeLock())
        slot.users += 1
        try:
            async with slot.lock:
                yield
        finally:
            slot.users -= 1
            if not slot.users:
                del self._locks[server_id]

    def _cached(self, server_id: str, emit: Emitter) -> list[str] | None:
        cached = self._cache.get(server_id)
        if cached is None:
            return None
        emit.debug(f"Using cached tools for {server_id}")
        return list(cached)

    @staticmethod
    def _report_failure(server_id: str, error: ErrorTrace, emit: Emitter) -> None:
        emit.error(f"Failed to discover tools for {server_id}: {error.message}", code=error.error_code)
