"""Start a server process in discovery mode.

The command string goes through the shell, so pipes, ``&&`` and quoting in a
configured command behave as they would in a terminal. Arguments are quoted
individually and appended, so they reach the process unchanged.
"""

from __future__ import annotations

import asyncio
import os
import shlex
import sys
from collections.abc import Mapping, Sequence

from toolprobe.foundation.config import DEFAULT_DISCOVERY_ARGS
from toolprobe.foundation.errors import Err, ErrorCode, ErrorTrace, Ok, Result, trace_from_exc

from .models import DiscoveryRequest
from .session import ProcessSession

# Variables servers check to switch into a list-and-exit mode. Applied last,
# so neither the ambient environment nor the server config can override them.
DISCOVERY_ENV: dict[str, str] = {
    "MCP_LIST_FUNCTIONS": "true",
    "MCP_DISCOVERY_MODE": "true",
    "MCP_REQUIRE_DESCRIPTIONS": "true",
    "MCP_LIST_TOOLS": "true",
    "FUNCTIONS_DISCOVERY": "true",
    "NODE_ENV": "discovery",
}


def build_env(env: Mapping[str, str], base: Mapping[str, str] | None = None) -> dict[str, str]:
    """Ambient environment, overridden by the server's env, overridden by DISCOVERY_ENV."""
    merged = dict(os.environ if base is None else base)
    merged.update(env)
    merged.update(DISCOVERY_ENV)
    return merged


def build_args(args: Sequence[str], default_args: Sequence[str] = DEFAULT_DISCOVERY_ARGS) -> list[str]:
    return list(args) if args else list(default_args)


def build_command_line(command: str, args: Sequence[str]) -> str:
    return " ".join([command, *(shlex.quote(a) for a in args)])


class Launcher:
    """Spawns discovery processes.

    Every process gets piped stdin/stdout/stderr and, on POSIX, its own
    session so a timeout can kill the whole tree the shell started.

    Args:
        default_args: Arguments used when a request has none
    """

    __slots__ = ("_default_args",)

    def __init__(self, default_args: Sequence[str] = DEFAULT_DISCOVERY_ARGS) -> None:
        self._default_args = tuple(default_args)

    @property
    def default_args(self) -> tuple[str, ...]:
        return self._default_args

    def command_line(self, request: DiscoveryRequest) -> str:
        return build_command_line(request.command, build_args(request.args, self._default_args))

    async def launch(self, request: DiscoveryRequest) -> Result[ProcessSession, ErrorTrace]:
        """Start the process. Err(SPAWN_FAILED) if the OS refuses."""
        command_line = self.command_line(request)
        try:
            process = await asyncio.create_subprocess_shell(
                command_line,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=build_env(request.env),
                start_new_session=sys.platform != "win32",
            )
        except (OSError, ValueError) as e:
            return Err(trace_from_exc(
                e, operation=f"launch:{request.server_id}", code=ErrorCode.SPAWN_FAILED,
            ))
        return Ok(ProcessSession(server_id=request.server_id, process=process, command_line=command_line))
