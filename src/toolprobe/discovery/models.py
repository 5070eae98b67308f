"""Data model for discovery: server configs, requests, and the settings file shape."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from toolprobe.foundation.errors import DiscoveryError, ErrorCode, trace


class ServerConfig(BaseModel):
    """One entry of an ``mcpServers`` mapping.

    Only command/args/env drive discovery. disabled and autoApprove are read
    so the known-tools fallback and resolve_all can use them.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    command: str = ""
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    disabled: bool = False
    auto_approve: list[str] = Field(default_factory=list, alias="autoApprove")

    @field_validator("args", "auto_approve", mode="before")
    @classmethod
    def _none_as_empty_list(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("env", mode="before")
    @classmethod
    def _stringify_env(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return {str(k): str(val) for k, val in v.items()}
        return v


class DiscoveryRequest(BaseModel):
    """Everything needed to probe one server."""

    model_config = ConfigDict(frozen=True)

    server_id: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_config(cls, server_id: str, config: ServerConfig | Mapping[str, Any]) -> DiscoveryRequest:
        """Build a request, raising DiscoveryError(INVALID_CONFIG) when unusable."""
        try:
            cfg = config if isinstance(config, ServerConfig) else ServerConfig.model_validate(config)
        except ValidationError as e:
            raise DiscoveryError(trace(
                f"Invalid server config for {server_id}: {e.error_count()} error(s)",
                code=ErrorCode.INVALID_CONFIG, recoverable=False, details=str(e),
            )) from e
        if not cfg.command.strip():
            raise DiscoveryError(trace(
                f"No command defined for server {server_id}",
                code=ErrorCode.INVALID_CONFIG, recoverable=False,
            ))
        return cls(server_id=server_id, command=cfg.command, args=list(cfg.args), env=dict(cfg.env))


class McpSettings(BaseModel):
    """The MCP settings document: ``{"mcpServers": {id: ServerConfig}}``."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    mcp_servers: dict[str, ServerConfig] = Field(alias="mcpServers")

    @classmethod
    def from_json(cls, text: str | bytes) -> McpSettings:
        try:
            data = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            raise DiscoveryError(trace(
                f"Invalid JSON in MCP settings: {e}", code=ErrorCode.INVALID_CONFIG, recoverable=False,
            )) from e
        if not isinstance(data, dict) or "mcpServers" not in data:
            raise DiscoveryError(trace(
                "Invalid MCP settings format: missing mcpServers object",
                code=ErrorCode.INVALID_CONFIG, recoverable=False,
            ))
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise DiscoveryError(trace(
                f"Invalid MCP settings: {e.error_count()} error(s)",
                code=ErrorCode.INVALID_CONFIG, recoverable=False, details=str(e),
            )) from e

    def enabled_servers(self) -> dict[str, ServerConfig]:
        return {sid: cfg for sid, cfg in self.mcp_servers.items() if not cfg.disabled}
