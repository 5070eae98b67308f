"""Per-probe process state threaded through launch, exchange and extraction."""

from __future__ import annotations

import asyncio
import os
import signal
import sys
import time
from dataclasses import dataclass, field
from enum import StrEnum

# sh exit codes: 126 found but not executable, 127 not found
_SHELL_UNEXECUTABLE = (126, 127)


class TerminationReason(StrEnum):
    EXITED = "exited"
    TIMED_OUT = "timed-out"
    SPAWN_FAILED = "spawn-failed"


@dataclass(slots=True)
class ProcessSession:
    """Owns one subprocess and the raw bytes it produced.

    Created by the launcher, resolved by the exchange, and closed before the
    discovery call returns. Buffers only grow; nothing is truncated.
    """

    server_id: str
    process: asyncio.subprocess.Process
    command_line: str
    stdout: bytearray = field(default_factory=bytearray)
    stderr: bytearray = field(default_factory=bytearray)
    reason: TerminationReason | None = None
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def alive(self) -> bool:
        return self.process.returncode is None

    @property
    def return_code(self) -> int | None:
        return self.process.returncode

    @property
    def elapsed_ms(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return round((end - self.started_at) * 1000, 2)

    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")

    def resolve(self, reason: TerminationReason) -> bool:
        """Record how the session ended. Only the first call has effect."""
        if self.reason is not None:
            return False
        self.reason = reason
        self.finished_at = time.monotonic()
        return True

    def kill(self) -> bool:
        """Kill the process group. Safe to call repeatedly.

        Returns True only if the direct child was still running. Stray
        grandchildren in the group are killed either way.
        """
        was_alive = self.process.returncode is None
        if sys.platform != "win32":
            try:
                os.killpg(self.process.pid, signal.SIGKILL)
                return was_alive
            except (ProcessLookupError, PermissionError):
                pass
        if not was_alive:
            return False
        try:
            self.process.kill()
        except ProcessLookupError:
            return False
        return True

    def close_stdin(self) -> None:
        stdin = self.process.stdin
        if stdin is not None and not stdin.is_closing():
            stdin.close()

    def snapshot(self) -> ProbeOutcome:
        return ProbeOutcome(
            server_id=self.server_id,
            command_line=self.command_line,
            stdout=self.stdout_text(),
            stderr=self.stderr_text(),
            reason=self.reason or TerminationReason.EXITED,
            return_code=self.return_code,
            elapsed_ms=self.elapsed_ms,
        )


@dataclass(slots=True, frozen=True)
class ProbeOutcome:
    """Immutable record of a finished probe: what the process printed and how it ended."""

    server_id: str
    command_line: str
    stdout: str
    stderr: str
    reason: TerminationReason
    return_code: int | None
    elapsed_ms: float

    @property
    def timed_out(self) -> bool:
        return self.reason is TerminationReason.TIMED_OUT

    @property
    def clean_exit(self) -> bool:
        return self.reason is TerminationReason.EXITED and self.return_code in (0, None)

    @property
    def never_ran(self) -> bool:
        """The shell could not find or execute the command (exit 126 or 127) and nothing reached stdout."""
        return (
            self.reason is TerminationReason.EXITED
            and self.return_code in _SHELL_UNEXECUTABLE
            and not self.stdout.strip()
        )
