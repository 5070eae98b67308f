"""Toolprobe - discover the tools an MCP server exposes by running it.

Spawns a configured MCP server in discovery mode, sends a JSON-RPC
``tools/list`` request over stdio, and extracts tool names from whatever the
server prints, whether that is a proper reply, a function manifest, or plain
log lines. Results are cached per server id.

Quick Start:
    >>> from toolprobe import ToolDiscovery
    >>>
    >>> engine = ToolDiscovery()
    >>> await engine.discover_tools("echo-server", {
    ...     "command": "echo",
    ...     "args": ['{"jsonrpc":"2.0","id":1,"result":{"tools":[{"name":"ping"}]}}'],
    ... })
    ['ping']
    >>> engine.clear_cache()

Whole Settings Files (with known-tools fallback):
    >>> from toolprobe import McpSettings, ToolResolver
    >>>
    >>> settings = McpSettings.from_json(path.read_text())
    >>> servers = await ToolResolver().resolve_all(settings)
    >>> servers["github.com/Garoth/sleep-mcp"].tools
    ['sleep']

Configuration (environment):
    TOOLPROBE_DISCOVERY_TIMEOUT=10000      # ms before the server is killed
    TOOLPROBE_DISCOVERY_CACHE_TTL=3600     # seconds; unset caches forever
    TOOLPROBE_LOG_FORMAT=json              # console | json | none
"""

from __future__ import annotations

__version__ = "0.1.0"

# Discovery
from .discovery import (
    DISCOVERY_ENV,
    KNOWN_SERVER_TOOLS,
    DiscoveryRequest,
    Launcher,
    McpSettings,
    ProbeOutcome,
    ResolvedServer,
    ServerConfig,
    ToolDiscovery,
    ToolResolver,
    extract_tools,
    tools_for_server,
)

# Cache
from .cache import DiscoveryCache, MemoryCache

# Foundation
from .foundation import (
    DiscoveryError,
    DiscoverySettings,
    Err,
    ErrorCode,
    ErrorTrace,
    Ok,
    Result,
    ToolprobeSettings,
    get_settings,
)

# Observability
from .runtime.observability import (
    CallbackSink,
    CollectingSink,
    Diagnostic,
    DiagnosticLevel,
    DiagnosticSink,
    LoggerSink,
    configure_logging,
    get_logger,
)

__all__ = [
    "__version__",
    # Discovery
    "DISCOVERY_ENV", "KNOWN_SERVER_TOOLS", "DiscoveryRequest", "Launcher", "McpSettings",
    "ProbeOutcome", "ResolvedServer", "ServerConfig", "ToolDiscovery", "ToolResolver",
    "extract_tools", "tools_for_server",
    # Cache
    "DiscoveryCache", "MemoryCache",
    # Foundation
    "DiscoveryError", "DiscoverySettings", "Err", "ErrorCode", "ErrorTrace", "Ok", "Result",
    "ToolprobeSettings", "get_settings",
    # Observability
    "CallbackSink", "CollectingSink", "Diagnostic", "DiagnosticLevel", "DiagnosticSink",
    "LoggerSink", "configure_logging", "get_logger",
]
