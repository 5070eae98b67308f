"""Talk to a freshly launched server: send tools/list, collect everything it prints.

The exchange is a race between two completions:

- the process exits and both pipes reach EOF, or
- the deadline passes, and the process group is killed.

Whichever happens first resolves the session exactly once. Output captured up
to that point is kept in full, so a server killed mid-reply still leaves its
partial output for extraction.
"""

from __future__ import annotations

import asyncio
import contextlib

import orjson

from toolprobe.foundation.errors import ErrorCode
from toolprobe.runtime.concurrency import race_with_index
from toolprobe.runtime.observability import Emitter

from .session import ProcessSession, TerminationReason

TOOLS_LIST_REQUEST: bytes = orjson.dumps({"jsonrpc": "2.0", "id": 1, "method": "tools/list", "params": {}}) + b"\n"

_CHUNK_SIZE = 64 * 1024
_EXIT = 0


async def _pump(stream: asyncio.StreamReader | None, buffer: bytearray) -> None:
    if stream is None:
        return
    while chunk := await stream.read(_CHUNK_SIZE):
        buffer.extend(chunk)


async def send_request(session: ProcessSession, delay: float, emit: Emitter) -> bool:
    """Write the tools/list request after delay seconds. Returns whether it was written.

    A failed write is not an error for the probe: plenty of servers print
    their tools without reading stdin at all.
    """
    await asyncio.sleep(delay)
    stdin = session.process.stdin
    if stdin is None or stdin.is_closing() or not session.alive:
        emit.debug("Server stdin is not writable; request not sent")
        return False
    try:
        emit.debug(f"Sending JSON-RPC request: {TOOLS_LIST_REQUEST.decode().strip()}")
        stdin.write(TOOLS_LIST_REQUEST)
        await stdin.drain()
    except (BrokenPipeError, ConnectionResetError, OSError) as e:
        emit.debug(f"Failed to write to stdin: {e}", code=ErrorCode.WRITE_FAILED)
        return False
    return True


async def _wait_settled(tasks: list[asyncio.Task[None]], timeout: float) -> None:
    """Give tasks up to timeout seconds, then cancel whatever is left."""
    if not tasks:
        return
    _, pending = await asyncio.wait(tasks, timeout=timeout)
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)


async def run_exchange(
    session: ProcessSession,
    *,
    timeout: float,
    grace: float = 0.5,
    drain: float = 1.0,
    emit: Emitter | None = None,
) -> ProcessSession:
    """Drive one session to resolution and release the process.

    Args:
        session: A just-launched session
        timeout: Seconds before the process is killed
        grace: Seconds to wait before writing the request
        drain: Seconds allowed for pipes to flush after a kill
        emit: Diagnostic emitter

    Returns:
        The same session, resolved, with the process reaped and pipes closed.
    """
    emit = emit or Emitter()
    proc = session.process
    pumps = [
        asyncio.create_task(_pump(proc.stdout, session.stdout)),
        asyncio.create_task(_pump(proc.stderr, session.stderr)),
    ]
    writer = asyncio.create_task(send_request(session, grace, emit))

    async def exited() -> int:
        code = await proc.wait()
        # wait() rather than gather(): losing the race must not cancel the pumps
        await asyncio.wait(pumps)
        return code

    try:
        outcome = await race_with_index(exited(), asyncio.sleep(timeout))
        if outcome.index == _EXIT:
            session.resolve(TerminationReason.EXITED)
            _report_exit(session, emit)
        else:
            session.resolve(TerminationReason.TIMED_OUT)
            session.kill()
            emit.info(
                f"Completed discovery - terminated server process after {round(timeout * 1000)}ms",
                code=ErrorCode.TIMEOUT,
            )
    finally:
        await _release(session, pumps, writer, drain)
    return session


def _report_exit(session: ProcessSession, emit: Emitter) -> None:
    code = session.return_code
    if code not in (0, None):
        emit.warning(f"Server process exited with code {code}", return_code=code)
        if session.stderr:
            emit.debug(f"Error output: {session.stderr_text()}")


async def _release(
    session: ProcessSession,
    pumps: list[asyncio.Task[None]],
    writer: asyncio.Task[bool],
    drain: float,
) -> None:
    """Kill leftovers, reap the process, close pipes. Runs on every exit path."""
    writer.cancel()
    await asyncio.gather(writer, return_exceptions=True)
    session.kill()
    session.close_stdin()
    await _wait_settled(pumps, drain)
    with contextlib.suppress(asyncio.TimeoutError, ProcessLookupError):
        await asyncio.wait_for(session.process.wait(), timeout=drain)
    if session.reason is None:
        # Cancelled from outside before either path won
        session.resolve(TerminationReason.TIMED_OUT)
