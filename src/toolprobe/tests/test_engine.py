"""End-to-end tests for ToolDiscovery against real shell processes."""

from __future__ import annotations

import asyncio
import sys
import time

import pytest

from toolprobe.discovery import TOOLS_LIST_REQUEST, DiscoveryRequest, ServerConfig, ToolDiscovery
from toolprobe.discovery.session import TerminationReason
from toolprobe.foundation.config import DiscoverySettings
from toolprobe.foundation.testing import SpyLauncher
from toolprobe.runtime.observability import CollectingSink, DiagnosticLevel

pytestmark = pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX shell commands")

PING_REPLY = '{"jsonrpc":"2.0","id":1,"result":{"tools":[{"name":"ping"}]}}'


def sh(script: str, **extra: object) -> dict[str, object]:
    return {"command": "sh", "args": ["-c", script], **extra}


# ═════════════════════════════════════════════════════════════════════════════
# Discovery
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_echo_server_end_to_end(engine: ToolDiscovery) -> None:
    tools = await engine.discover_tools("echo-server", {"command": "echo", "args": [PING_REPLY]})
    assert tools == ["ping"]


@pytest.mark.asyncio
async def test_server_answering_tools_list_on_stdin(engine: ToolDiscovery) -> None:
    reply = '{"jsonrpc":"2.0","id":1,"result":{"tools":[{"name":"pong"},{"name":"get_time"}]}}'
    tools = await engine.discover_tools("stdio-server", sh(f"read line; echo '{reply}'"))
    assert tools == ["pong", "get_time"]


@pytest.mark.asyncio
async def test_accepts_server_config_model(engine: ToolDiscovery) -> None:
    config = ServerConfig(command="echo", args=[PING_REPLY])
    assert await engine.discover_tools("model-config", config) == ["ping"]


@pytest.mark.asyncio
async def test_stderr_is_used_when_stdout_is_silent(engine: ToolDiscovery, sink: CollectingSink) -> None:
    tools = await engine.discover_tools("stderr-server", sh("""echo '{"name": "from_stderr"}' >&2"""))
    assert tools == ["from_stderr"]
    assert sink.has(DiagnosticLevel.WARNING, "Server output is empty")


@pytest.mark.asyncio
async def test_nonzero_exit_still_extracts(engine: ToolDiscovery, sink: CollectingSink) -> None:
    tools = await engine.discover_tools("crashy", sh("""echo '{"name": "x_tool"}'; echo boom >&2; exit 3"""))
    assert tools == ["x_tool"]
    assert sink.has(DiagnosticLevel.WARNING, "Server process exited with code 3")
    assert sink.has(DiagnosticLevel.DEBUG, "Error output: boom")


@pytest.mark.asyncio
async def test_emits_progress_diagnostics(engine: ToolDiscovery, sink: CollectingSink) -> None:
    await engine.discover_tools("echo-server", {"command": "echo", "args": [PING_REPLY]})
    assert sink.has(DiagnosticLevel.INFO, "Discovering tools for echo-server")
    assert sink.has(DiagnosticLevel.DEBUG, "Running command: echo ")
    assert sink.has(DiagnosticLevel.DEBUG, "Discovered 1 tools for echo-server: ping")


# ═════════════════════════════════════════════════════════════════════════════
# Timeouts
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_silent_hanging_server_is_killed_at_timeout(sink: CollectingSink) -> None:
    engine = ToolDiscovery(DiscoverySettings(timeout=300, grace_period=50, kill_drain=0.5), sink=sink)
    start = time.monotonic()
    tools = await engine.discover_tools("sleeper", {"command": "sleep", "args": ["30"]})
    assert tools == []
    assert time.monotonic() - start < 3.0
    assert sink.has(DiagnosticLevel.INFO, "terminated server process after 300ms")


@pytest.mark.asyncio
async def test_partial_output_before_timeout_is_extracted(sink: CollectingSink) -> None:
    engine = ToolDiscovery(DiscoverySettings(timeout=500, grace_period=50, kill_drain=0.5), sink=sink)
    start = time.monotonic()
    tools = await engine.discover_tools("half-done", sh("""echo '{"name": "partial"}'; sleep 30"""))
    assert tools == ["partial"]
    assert time.monotonic() - start < 3.5


# ═════════════════════════════════════════════════════════════════════════════
# Caching
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_second_call_uses_cache(engine: ToolDiscovery, spy: SpyLauncher, sink: CollectingSink) -> None:
    config = {"command": "echo", "args": [PING_REPLY]}
    first = await engine.discover_tools("echo-server", config)
    second = await engine.discover_tools("echo-server", config)
    assert first == second == ["ping"]
    spy.assert_called_once()
    assert sink.has(DiagnosticLevel.DEBUG, "Using cached tools for echo-server")


@pytest.mark.asyncio
async def test_cached_result_is_a_copy(engine: ToolDiscovery) -> None:
    config = {"command": "echo", "args": [PING_REPLY]}
    (await engine.discover_tools("echo-server", config)).append("mutated")
    assert await engine.discover_tools("echo-server", config) == ["ping"]


@pytest.mark.asyncio
async def test_clear_cache_forces_a_new_spawn(engine: ToolDiscovery, spy: SpyLauncher, sink: CollectingSink) -> None:
    config = {"command": "echo", "args": [PING_REPLY]}
    await engine.discover_tools("echo-server", config)
    engine.clear_cache()
    assert not engine.is_cached("echo-server")
    assert await engine.discover_tools("echo-server", config) == ["ping"]
    assert spy.call_count == 2
    assert sink.has(DiagnosticLevel.INFO, "Tool discovery cache cleared")


@pytest.mark.asyncio
async def test_empty_result_is_cached(engine: ToolDiscovery, spy: SpyLauncher) -> None:
    assert await engine.discover_tools("silent", {"command": "true"}) == []
    assert await engine.discover_tools("silent", {"command": "true"}) == []
    assert engine.is_cached("silent")
    spy.assert_called_once()


@pytest.mark.asyncio
async def test_concurrent_calls_spawn_once(engine: ToolDiscovery, spy: SpyLauncher) -> None:
    config = {"command": "echo", "args": [PING_REPLY]}
    results = await asyncio.gather(*(engine.discover_tools("echo-server", config) for _ in range(5)))
    assert results == [["ping"]] * 5
    spy.assert_called_once()


@pytest.mark.asyncio
async def test_per_server_locks_are_dropped_once_idle(engine: ToolDiscovery) -> None:
    config = {"command": "echo", "args": [PING_REPLY]}
    await asyncio.gather(*(engine.discover_tools(f"server-{i % 2}", config) for i in range(6)))
    await engine.discover_tools("broken", {"args": ["x"]})
    assert engine._locks == {}


@pytest.mark.asyncio
async def test_invalidate_single_server(engine: ToolDiscovery, spy: SpyLauncher) -> None:
    config = {"command": "echo", "args": [PING_REPLY]}
    await engine.discover_tools("a", config)
    await engine.discover_tools("b", config)
    assert engine.invalidate("a") is True
    assert not engine.is_cached("a")
    assert engine.is_cached("b")


# ═════════════════════════════════════════════════════════════════════════════
# Failures
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_spawn_failure_returns_empty_and_is_not_cached(fast_settings: DiscoverySettings) -> None:
    sink = CollectingSink()
    spy = SpyLauncher(fail_with="spawn refused")
    engine = ToolDiscovery(fast_settings, sink=sink, launcher=spy)

    assert await engine.discover_tools("broken", {"command": "whatever"}) == []
    assert not engine.is_cached("broken")
    assert sink.has(DiagnosticLevel.ERROR, "Failed to discover tools for broken: spawn refused")

    await engine.discover_tools("broken", {"command": "whatever"})
    assert spy.call_count == 2


@pytest.mark.asyncio
async def test_os_level_spawn_failure(engine: ToolDiscovery, sink: CollectingSink) -> None:
    # An '=' in a variable name is rejected before anything is executed
    config = {"command": "echo", "args": ["hi"], "env": {"BAD=NAME": "1"}}
    assert await engine.discover_tools("bad-env", config) == []
    assert not engine.is_cached("bad-env")
    errors = [d for d in sink.events if d.level is DiagnosticLevel.ERROR]
    assert errors and errors[0].context["code"] == "SPAWN_FAILED"


@pytest.mark.asyncio
async def test_command_the_shell_cannot_find_is_a_spawn_failure(
    engine: ToolDiscovery, spy: SpyLauncher, sink: CollectingSink,
) -> None:
    config = {"command": "no_such_server_xyz"}
    assert await engine.discover_tools("missing", config) == []
    assert not engine.is_cached("missing")
    errors = [d for d in sink.events if d.level is DiagnosticLevel.ERROR]
    assert errors and errors[0].context["code"] == "SPAWN_FAILED"
    assert "exit code 127" in errors[0].message

    assert await engine.discover_tools("missing", config) == []
    assert spy.call_count == 2


@pytest.mark.asyncio
async def test_exit_127_with_stdout_is_still_extracted(engine: ToolDiscovery) -> None:
    tools = await engine.discover_tools("wrapper", sh("""echo '{"name": "x_tool"}'; exit 127"""))
    assert tools == ["x_tool"]
    assert engine.is_cached("wrapper")


@pytest.mark.asyncio
async def test_missing_command_is_invalid_config(engine: ToolDiscovery, spy: SpyLauncher, sink: CollectingSink) -> None:
    assert await engine.discover_tools("no-command", {"args": ["x"]}) == []
    spy.assert_not_called()
    assert not engine.is_cached("no-command")
    assert sink.has(DiagnosticLevel.ERROR, "No command defined for server no-command")


@pytest.mark.asyncio
async def test_unparseable_config_is_invalid_config(engine: ToolDiscovery, sink: CollectingSink) -> None:
    assert await engine.discover_tools("bad-args", {"command": "echo", "args": 42}) == []
    errors = [d for d in sink.events if d.level is DiagnosticLevel.ERROR]
    assert errors and errors[0].context["code"] == "INVALID_CONFIG"


@pytest.mark.asyncio
async def test_unexpected_exception_degrades_to_empty(fast_settings: DiscoverySettings, sink: CollectingSink) -> None:
    class ExplodingLauncher(SpyLauncher):
        async def launch(self, request: DiscoveryRequest):  # type: ignore[override]
            raise RuntimeError("kaboom")

    engine = ToolDiscovery(fast_settings, sink=sink, launcher=ExplodingLauncher())
    assert await engine.discover_tools("exploding", {"command": "echo"}) == []
    assert not engine.is_cached("exploding")
    errors = [d for d in sink.events if d.level is DiagnosticLevel.ERROR]
    assert errors and errors[0].context["code"] == "UNKNOWN"


@pytest.mark.asyncio
async def test_failing_sink_does_not_change_the_result(fast_settings: DiscoverySettings) -> None:
    class BrokenSink:
        def emit(self, diagnostic: object) -> None:
            raise OSError("disk full")

    engine = ToolDiscovery(fast_settings, sink=BrokenSink())
    assert await engine.discover_tools("echo-server", {"command": "echo", "args": [PING_REPLY]}) == ["ping"]


@pytest.mark.asyncio
async def test_caller_cancellation_propagates(sink: CollectingSink) -> None:
    engine = ToolDiscovery(DiscoverySettings(timeout=10_000, grace_period=50, kill_drain=0.5), sink=sink)
    task = asyncio.create_task(engine.discover_tools("sleeper", {"command": "sleep", "args": ["30"]}))
    await asyncio.sleep(0.2)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert not engine.is_cached("sleeper")


# ═════════════════════════════════════════════════════════════════════════════
# Raw probes
# ═════════════════════════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_probe_applies_default_args(engine: ToolDiscovery) -> None:
    outcome = (await engine.probe(DiscoveryRequest(server_id="defaults", command="echo"))).unwrap()
    assert outcome.stdout.strip() == "--list-functions --discovery"
    assert outcome.reason is TerminationReason.EXITED
    assert outcome.clean_exit


@pytest.mark.asyncio
async def test_probe_injects_discovery_environment(engine: ToolDiscovery) -> None:
    request = DiscoveryRequest(
        server_id="env",
        command="sh",
        args=["-c", 'echo "$MCP_LIST_TOOLS:$NODE_ENV:$CUSTOM"'],
        env={"CUSTOM": "kept", "NODE_ENV": "production"},
    )
    outcome = (await engine.probe(request)).unwrap()
    assert outcome.stdout.strip() == "true:discovery:kept"


@pytest.mark.asyncio
async def test_probe_writes_tools_list_request(engine: ToolDiscovery) -> None:
    request = DiscoveryRequest(server_id="cat", command="sh", args=["-c", 'read line; echo "$line"'])
    outcome = (await engine.probe(request)).unwrap()
    assert outcome.stdout.strip() == TOOLS_LIST_REQUEST.decode().strip()


@pytest.mark.asyncio
async def test_probe_of_missing_command_is_err(engine: ToolDiscovery) -> None:
    probed = await engine.probe(DiscoveryRequest(server_id="missing", command="no_such_server_xyz"))
    assert probed.is_err()
    assert probed.unwrap_err().root_operation == "launch:missing"


@pytest.mark.asyncio
async def test_spy_honours_configured_default_args(fast_settings: DiscoverySettings) -> None:
    settings = fast_settings.model_copy(update={"default_args": ["--tools"]})
    spy = SpyLauncher(default_args=settings.default_args)
    engine = ToolDiscovery(settings, sink=CollectingSink(), launcher=spy)
    outcome = (await engine.probe(DiscoveryRequest(server_id="defaults", command="echo"))).unwrap()
    assert outcome.stdout.strip() == "--tools"
    assert spy.default_args == ("--tools",)
    assert spy.last_launch is not None and spy.last_launch.command_line == "echo --tools"


@pytest.mark.asyncio
async def test_probe_is_never_cached(engine: ToolDiscovery, spy: SpyLauncher) -> None:
    request = DiscoveryRequest(server_id="echo-server", command="echo", args=[PING_REPLY])
    await engine.probe(request)
    await engine.probe(request)
    assert spy.call_count == 2
    assert not engine.is_cached("echo-server")
