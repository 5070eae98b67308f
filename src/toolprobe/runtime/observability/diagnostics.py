"""Leveled diagnostic events emitted by the discovery engine.

Diagnostics are advisory: they describe what a probe did (spawned, timed out,
found nothing) for logging and UI layers. The engine never branches on them
and a failing sink cannot break a discovery call.

Example:
    >>> sink = CollectingSink()
    >>> engine = ToolDiscovery(sink=sink)
    >>> await engine.discover_tools("time", {"command": "uvx mcp-server-time"})
    >>> sink.messages(DiagnosticLevel.INFO)
    ['Discovering tools for time', ...]
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Callable, Protocol, runtime_checkable

from toolprobe.foundation.errors import JsonDict

if TYPE_CHECKING:
    from .logging import BoundLogger


class DiagnosticLevel(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class Diagnostic:
    """A single event: level, human message, and structured context."""

    level: DiagnosticLevel
    message: str
    context: JsonDict = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


@runtime_checkable
class DiagnosticSink(Protocol):
    """Anything that accepts diagnostics."""

    def emit(self, diagnostic: Diagnostic) -> None: ...


@dataclass(slots=True)
class LoggerSink:
    """Forwards diagnostics to a structured logger (the engine default)."""

    log: BoundLogger

    def emit(self, diagnostic: Diagnostic) -> None:
        getattr(self.log, diagnostic.level.value)(diagnostic.message, **diagnostic.context)


@dataclass(slots=True)
class CollectingSink:
    """Records diagnostics in memory, for UI layers and tests."""

    events: list[Diagnostic] = field(default_factory=list)

    def emit(self, diagnostic: Diagnostic) -> None:
        self.events.append(diagnostic)

    def messages(self, level: DiagnosticLevel | None = None) -> list[str]:
        return [d.message for d in self.events if level is None or d.level == level]

    def has(self, level: DiagnosticLevel, fragment: str) -> bool:
        """True if some event at level contains fragment in its message."""
        return any(d.level == level and fragment in d.message for d in self.events)

    def clear(self) -> None:
        self.events.clear()


@dataclass(slots=True)
class CallbackSink:
    """Adapts a plain callable taking (level, message)."""

    callback: Callable[[str, str], None]

    def emit(self, diagnostic: Diagnostic) -> None:
        self.callback(diagnostic.level.value, diagnostic.message)


@dataclass(slots=True)
class FanoutSink:
    """Delivers each diagnostic to several sinks; one failing sink does not starve the others."""

    sinks: list[DiagnosticSink] = field(default_factory=list)

    def emit(self, diagnostic: Diagnostic) -> None:
        for sink in self.sinks:
            try:
                sink.emit(diagnostic)
            except Exception:  # noqa: BLE001 - sinks are advisory
                continue


@dataclass(slots=True)
class NullSink:
    """Discards everything."""

    def emit(self, diagnostic: Diagnostic) -> None:
        pass


@dataclass(slots=True)
class Emitter:
    """Leveled front-end over a sink with bound context.

    Sink failures are swallowed here, which keeps diagnostics from ever
    changing the outcome of a discovery call.
    """

    sink: DiagnosticSink = field(default_factory=NullSink)
    context: JsonDict = field(default_factory=dict)

    def bind(self, **kw: object) -> Emitter:
        return Emitter(sink=self.sink, context={**self.context, **kw})

    def emit(self, level: DiagnosticLevel, message: str, **kw: object) -> None:
        try:
            self.sink.emit(Diagnostic(level=level, message=message, context={**self.context, **kw}))
        except Exception:  # noqa: BLE001 - sinks are advisory
            pass

    def debug(self, message: str, **kw: object) -> None:
        self.emit(DiagnosticLevel.DEBUG, message, **kw)

    def info(self, message: str, **kw: object) -> None:
        self.emit(DiagnosticLevel.INFO, message, **kw)

    def warning(self, message: str, **kw: object) -> None:
        self.emit(DiagnosticLevel.WARNING, message, **kw)

    def error(self, message: str, **kw: object) -> None:
        self.emit(DiagnosticLevel.ERROR, message, **kw)
