"""Tool discovery: probe MCP server processes and scrape their tool names.

- ToolDiscovery: cached, total discover_tools(server_id, config)
- Launcher/ProcessSession: spawning and owning a discovery process
- run_exchange: request write, output capture, exit/timeout race
- extract_tools: the strategy chain over captured text
- ToolResolver: discovery with the known-tools fallback for whole settings files
"""

from .engine import ToolDiscovery
from .exchange import TOOLS_LIST_REQUEST, run_exchange, send_request
from .extraction import (
    STRATEGIES,
    Strategy,
    extract_from_streams,
    extract_tools,
    iter_json_objects,
    match_function_manifest,
    match_json_rpc,
    run_chain,
    scan_declarations,
    scan_identifiers,
    scan_lines,
)
from .known import KNOWN_SERVER_TOOLS, best_match, placeholder_tool, tools_for_server
from .launcher import DISCOVERY_ENV, Launcher, build_args, build_command_line, build_env
from .models import DiscoveryRequest, McpSettings, ServerConfig
from .resolver import ResolvedServer, ToolResolver
from .session import ProbeOutcome, ProcessSession, TerminationReason

__all__ = [
    # Engine
    "ToolDiscovery",
    # Process
    "DISCOVERY_ENV", "Launcher", "build_args", "build_command_line", "build_env",
    "ProbeOutcome", "ProcessSession", "TerminationReason",
    "TOOLS_LIST_REQUEST", "run_exchange", "send_request",
    # Extraction
    "STRATEGIES", "Strategy", "extract_from_streams", "extract_tools", "iter_json_objects",
    "match_function_manifest", "match_json_rpc", "run_chain", "scan_declarations",
    "scan_identifiers", "scan_lines",
    # Models
    "DiscoveryRequest", "McpSettings", "ServerConfig",
    # Fallback
    "KNOWN_SERVER_TOOLS", "best_match", "placeholder_tool", "tools_for_server",
    "ResolvedServer", "ToolResolver",
]
