"""Resolve tool lists for whole MCP settings documents.

Discovery first, then the static known-tools mapping when discovery is off
or comes back empty. Disabled servers are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from toolprobe.runtime.concurrency import map_async

from .engine import ToolDiscovery
from .known import tools_for_server
from .models import McpSettings, ServerConfig

ToolSource = Literal["discovered", "known"]


class ResolvedServer(BaseModel):
    """A server entry together with the tools attributed to it."""

    model_config = ConfigDict(frozen=True)

    server_id: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    auto_approve: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    source: ToolSource = "known"


class ToolResolver:
    """Attributes tools to servers using a discovery engine plus the known mapping.

    Args:
        engine: Discovery engine; a default ToolDiscovery when omitted
        max_concurrency: Probes in flight at once during resolve_all; defaults to settings
    """

    __slots__ = ("_engine", "_limit")

    def __init__(self, engine: ToolDiscovery | None = None, *, max_concurrency: int | None = None) -> None:
        self._engine = engine or ToolDiscovery()
        self._limit = max_concurrency or self._engine.settings.max_concurrency

    @property
    def engine(self) -> ToolDiscovery:
        return self._engine

    async def resolve(self, server_id: str, config: ServerConfig | Mapping[str, Any]) -> list[str]:
        return (await self.resolve_server(server_id, config)).tools

    async def resolve_server(self, server_id: str, config: ServerConfig | Mapping[str, Any]) -> ResolvedServer:
        cfg = config if isinstance(config, ServerConfig) else ServerConfig.model_validate(config)
        tools: list[str] = []
        if self._engine.settings.enabled:
            tools = await self._engine.discover_tools(server_id, cfg)
        source: ToolSource = "discovered" if tools else "known"
        if not tools:
            tools = tools_for_server(server_id, cfg)
        return ResolvedServer(
            server_id=server_id,
            command=cfg.command,
            args=list(cfg.args),
            env=dict(cfg.env),
            auto_approve=list(cfg.auto_approve),
            tools=tools,
            source=source,
        )

    async def resolve_all(
        self, servers: McpSettings | Mapping[str, ServerConfig | Mapping[str, Any]],
    ) -> dict[str, ResolvedServer]:
        """Resolve every enabled server concurrently; keys keep the input order."""
        if isinstance(servers, McpSettings):
            entries = servers.enabled_servers()
        else:
            parsed = {
                sid: cfg if isinstance(cfg, ServerConfig) else ServerConfig.model_validate(cfg)
                for sid, cfg in servers.items()
            }
            entries = {sid: cfg for sid, cfg in parsed.items() if not cfg.disabled}

        resolved = await map_async(
            lambda item: self.resolve_server(*item), list(entries.items()), limit=self._limit,
        )
        return {r.server_id: r for r in resolved}
