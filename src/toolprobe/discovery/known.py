"""Static server-to-tools mapping used when probing finds nothing.

Covers widely used community MCP servers whose tool sets are stable. Lookup
falls through auto-approved names, an exact id match, a fuzzy id match, and
finally a single placeholder name derived from the server id.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

from .models import ServerConfig

_MCP_SERVERS = "github.com/modelcontextprotocol/servers/tree/main/src"

KNOWN_SERVER_TOOLS: Mapping[str, tuple[str, ...]] = MappingProxyType({
    "github.com/Garoth/sleep-mcp": ("sleep",),
    "github.com/anaisbetts/mcp-youtube": ("download_youtube_url",),
    "github.com/ahujasid/blender": (
        "get_scene_info", "get_object_info", "create_object", "modify_object",
        "delete_object", "set_material", "execute_blender_code", "get_polyhaven_categories",
        "search_polyhaven_assets", "download_polyhaven_asset", "set_texture", "get_polyhaven_status",
    ),
    "github.com/executeautomation/mcp-playwright": (
        "playwright_navigate", "playwright_screenshot", "playwright_click", "playwright_iframe_click",
        "playwright_fill", "playwright_select", "playwright_hover", "playwright_evaluate",
        "playwright_console_logs", "playwright_close", "playwright_get", "playwright_post",
        "playwright_put", "playwright_patch", "playwright_delete",
    ),
    "github.com/NightTrek/Software-planning-mcp": (
        "start_planning", "save_plan", "add_todo", "remove_todo", "get_todos", "update_todo_status",
    ),
    "github.com/pashpashpash/perplexity-mcp": (
        "chat_perplexity", "search", "get_documentation", "find_apis", "check_deprecated_code",
    ),
    "github.com/21st-dev/magic-mcp": (
        "21st_magic_component_builder", "logo_search", "21st_magic_component_inspiration",
    ),
    f"{_MCP_SERVERS}/puppeteer": (
        "puppeteer_navigate", "puppeteer_screenshot", "puppeteer_click", "puppeteer_fill",
        "puppeteer_select", "puppeteer_hover", "puppeteer_evaluate",
    ),
    "github.com/pashpashpash/mcp-taskmanager": (
        "request_planning", "get_next_task", "mark_task_done", "approve_task_completion",
        "approve_request_completion", "open_task_details", "list_requests",
        "add_tasks_to_request", "update_task", "delete_task",
    ),
    f"{_MCP_SERVERS}/github": (
        "create_or_update_file", "search_repositories", "create_repository", "get_file_contents",
        "push_files", "create_issue", "create_pull_request", "fork_repository", "create_branch",
        "list_commits", "list_issues", "update_issue", "add_issue_comment", "search_code",
        "search_issues", "search_users", "get_issue",
    ),
    f"{_MCP_SERVERS}/google-maps": (
        "maps_geocode", "maps_reverse_geocode", "maps_search_places", "maps_place_details",
        "maps_distance_matrix", "maps_elevation", "maps_directions",
    ),
    "github.com/tavily-ai/tavily-mcp": ("tavily-search", "tavily-extract"),
    f"{_MCP_SERVERS}/sequentialthinking": ("sequentialthinking",),
    f"{_MCP_SERVERS}/brave-search": ("brave_web_search", "brave_local_search"),
    f"{_MCP_SERVERS}/filesystem": (
        "read_file", "read_multiple_files", "write_file", "edit_file", "create_directory",
        "list_directory", "directory_tree", "move_file", "search_files", "get_file_info",
        "list_allowed_directories",
    ),
    "github.com/zcaceres/fetch-mcp": ("fetch_html", "fetch_markdown", "fetch_txt", "fetch_json"),
    "github.com/pashpashpash/mcp-notion-server": (
        "notion_append_block_children", "notion_retrieve_block", "notion_retrieve_block_children",
        "notion_delete_block", "notion_retrieve_page", "notion_update_page_properties",
        "notion_list_all_users", "notion_retrieve_user", "notion_retrieve_bot_user",
        "notion_create_database", "notion_query_database", "notion_retrieve_database",
        "notion_update_database", "notion_create_database_item", "notion_create_comment",
        "notion_retrieve_comments", "notion_search",
    ),
    "github.com/pashpashpash/mcp-webresearch": ("search_google", "visit_page", "take_screenshot"),
    f"{_MCP_SERVERS}/time": ("get_current_time", "format_time", "convert_timezone", "get_unix_timestamp"),
    "github.com/AgentDeskAI/browser-tools-mcp": (
        "getConsoleLogs", "getConsoleErrors", "getNetworkErrors", "getNetworkLogs",
        "takeScreenshot", "getSelectedElement", "wipeLogs", "runAccessibilityAudit",
        "runPerformanceAudit", "runSEOAudit", "runNextJSAudit", "runDebuggerMode",
        "runAuditMode", "runBestPracticesAudit",
    ),
})

_NON_IDENT = re.compile(r"[^a-zA-Z0-9_]")


def _last_segment(server_id: str) -> str:
    return server_id.split("/")[-1]


def best_match(server_id: str, known: Mapping[str, Any] = KNOWN_SERVER_TOOLS) -> str | None:
    """Closest known id: shared prefix (scored by the shorter id) or same last path segment.

    The first candidate with the strictly highest score wins.
    """
    best, best_score = None, 0
    tail = _last_segment(server_id)
    for known_id in known:
        if server_id.startswith(known_id) or known_id.startswith(server_id):
            if (score := min(len(known_id), len(server_id))) > best_score:
                best, best_score = known_id, score
        if tail == _last_segment(known_id) and len(tail) > best_score:
            best, best_score = known_id, len(tail)
    return best


def placeholder_tool(server_id: str) -> str:
    """``<name>_tool`` from the id's last path segment, sanitized and lowercased."""
    return f"{_NON_IDENT.sub('_', _last_segment(server_id)).lower()}_tool"


def tools_for_server(
    server_id: str,
    config: ServerConfig | Mapping[str, Any] | None = None,
    known: Mapping[str, tuple[str, ...]] = KNOWN_SERVER_TOOLS,
) -> list[str]:
    """Best-guess tool names without running the server. Always non-empty, sorted."""
    cfg = config if isinstance(config, ServerConfig) else ServerConfig.model_validate(config or {})
    tools = list(dict.fromkeys(cfg.auto_approve))

    match = server_id if server_id in known else best_match(server_id, known)
    if match is not None:
        tools += [t for t in known[match] if t not in tools]

    if not tools:
        tools = [placeholder_tool(server_id)]
    return sorted(tools)
