"""Structured logging for discovery runs.

Every entry is an event name plus key/value context. Server id and pid lead the
console line so interleaved probes stay readable; JSON lines (orjson) are for
log shippers.

Quick Start:
    >>> from toolprobe.runtime.observability import configure_logging, get_logger
    >>> configure_logging(format="console", level="DEBUG")
    >>> log = get_logger("discovery", server="github.com/Garoth/sleep-mcp")
    >>> log.info("probe started", command="npx")
    12:04:31.118 [info] probe started server=github.com/Garoth/sleep-mcp command=npx logger=discovery
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol, TextIO, runtime_checkable

import orjson

from toolprobe.foundation.errors import JsonDict, JsonValue

# Context added by log_context(); follows the task across awaits
_scoped: ContextVar[JsonDict] = ContextVar("toolprobe_log_scope", default={})

# Keys printed first on console lines, in this order
_LEADING_KEYS = ("server", "pid", "stream", "strategy")


@dataclass(slots=True, frozen=True)
class LogEntry:
    timestamp: float
    level: str
    event: str
    context: JsonDict

    @property
    def iso(self) -> str:
        return datetime.fromtimestamp(self.timestamp, tz=UTC).isoformat()

    @property
    def clock(self) -> str:
        """HH:MM:SS.mmm"""
        return datetime.fromtimestamp(self.timestamp, tz=UTC).strftime("%H:%M:%S.%f")[:-3]


@runtime_checkable
class LogRenderer(Protocol):
    def render(self, entry: LogEntry) -> None: ...


@dataclass(slots=True)
class BoundLogger:
    """Logger carrying context. bind() and unbind() return new loggers.

    Example:
        >>> log = BoundLogger(context={"server": "time"})
        >>> log.info("spawned", pid=4242)
    """

    context: JsonDict = field(default_factory=dict)
    _renderer: LogRenderer | None = None
    _level: int = logging.DEBUG

    def bind(self, **kw: JsonValue) -> BoundLogger:
        return BoundLogger({**self.context, **kw}, self._renderer, self._level)

    def unbind(self, *keys: str) -> BoundLogger:
        kept = {k: v for k, v in self.context.items() if k not in keys}
        return BoundLogger(kept, self._renderer, self._level)

    def is_enabled_for(self, level: int) -> bool:
        return level >= self._level

    def log(self, level: int, event: str, **kw: JsonValue) -> None:
        if not self.is_enabled_for(level):
            return
        entry = LogEntry(
            timestamp=time.time(),
            level=logging.getLevelName(level).lower(),
            event=event,
            context={**_scoped.get(), **self.context, **kw},
        )
        (self._renderer or _active.renderer).render(entry)

    def debug(self, event: str, **kw: JsonValue) -> None:
        self.log(logging.DEBUG, event, **kw)

    def info(self, event: str, **kw: JsonValue) -> None:
        self.log(logging.INFO, event, **kw)

    def warning(self, event: str, **kw: JsonValue) -> None:
        self.log(logging.WARNING, event, **kw)

    def error(self, event: str, **kw: JsonValue) -> None:
        self.log(logging.ERROR, event, **kw)

    def exception(self, event: str, **kw: JsonValue) -> None:
        """error() plus the current traceback under exc_info."""
        self.log(logging.ERROR, event, **kw, exc_info=traceback.format_exc())


# ─────────────────────────────────────────────────────────────────────────────
# Renderers
# ─────────────────────────────────────────────────────────────────────────────


_ANSI = {"dim": "\033[2m", "bold": "\033[1m", "red": "\033[31m", "green": "\033[32m",
         "yellow": "\033[33m", "cyan": "\033[36m", "reset": "\033[0m"}
_LEVEL_STYLE = {"debug": "dim", "info": "green", "warning": "yellow", "error": "red", "critical": "red"}


@dataclass(slots=True)
class ConsoleRenderer:
    """One line per entry: ``clock [level] event key=value ...`` on stderr."""

    output: TextIO = field(default_factory=lambda: sys.stderr)
    colors: bool | None = None
    show_timestamp: bool = True

    def __post_init__(self) -> None:
        if self.colors is None:
            isatty = getattr(self.output, "isatty", None)
            self.colors = bool(isatty and isatty())

    def _paint(self, text: str, style: str) -> str:
        return f"{_ANSI[style]}{text}{_ANSI['reset']}" if self.colors else text

    def render(self, entry: LogEntry) -> None:
        ctx = dict(entry.context)
        exc_info = ctx.pop("exc_info", None)
        head = [self._paint(entry.clock, "dim")] if self.show_timestamp else []
        head.append(self._paint(f"[{entry.level}]", _LEVEL_STYLE.get(entry.level, "dim")))
        head.append(self._paint(entry.event, "bold"))
        ordered = [k for k in _LEADING_KEYS if k in ctx] + sorted(k for k in ctx if k not in _LEADING_KEYS)
        pairs = [f"{self._paint(k, 'cyan')}={_console_value(ctx[k])}" for k in ordered]
        self.output.write(" ".join(head + pairs) + "\n")
        if exc_info:
            self.output.write(self._paint(str(exc_info), "red") + "\n")


@dataclass(slots=True)
class JsonRenderer:
    """JSON Lines on stdout."""

    output: TextIO = field(default_factory=lambda: sys.stdout)

    def render(self, entry: LogEntry) -> None:
        record = {"timestamp": entry.iso, "level": entry.level, "event": entry.event, **entry.context}
        line = orjson.dumps(record, default=str, option=orjson.OPT_NON_STR_KEYS | orjson.OPT_APPEND_NEWLINE)
        self.output.write(line.decode())


@dataclass(slots=True)
class NoOpRenderer:
    def render(self, entry: LogEntry) -> None:
        pass


def _console_value(v: object) -> str:
    """Plain tokens bare; anything with spaces, quotes or structure as compact JSON."""
    if isinstance(v, bool) or v is None:
        return orjson.dumps(v).decode()
    if isinstance(v, int | float):
        return str(v)
    if isinstance(v, str) and v and not any(c.isspace() or c in "\"'=" for c in v):
        return v
    text = orjson.dumps(v, default=str).decode()
    return text if len(text) <= 120 else f"{text[:117]}..."


# ─────────────────────────────────────────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────────────────────────────────────────


@dataclass(slots=True)
class _Active:
    renderer: LogRenderer = field(default_factory=ConsoleRenderer)
    level: int = logging.INFO


_active = _Active()


def configure_logging(
    format: str = "console",  # noqa: A002
    level: str = "INFO",
    *,
    output: TextIO | None = None,
    colors: bool | None = None,
) -> LogRenderer:
    """Set the process-wide renderer and level. format is console, json or none."""
    match format:
        case "console":
            renderer: LogRenderer = ConsoleRenderer(output=output or sys.stderr, colors=colors)
        case "json":
            renderer = JsonRenderer(output=output or sys.stdout)
        case "none":
            renderer = NoOpRenderer()
        case _:
            raise ValueError(f"Unknown log format {format!r}; expected console, json or none")
    _active.renderer = renderer
    _active.level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)
    return renderer


def configure_from_settings() -> LogRenderer:
    """configure_logging() from TOOLPROBE_LOG_* settings."""
    from toolprobe.foundation.config import get_settings

    cfg = get_settings().logging
    return configure_logging(format=cfg.format, level=cfg.level)


def get_logger(name: str | None = None, **context: JsonValue) -> BoundLogger:
    """Logger at the configured level; name lands in context as ``logger``."""
    if name:
        context["logger"] = name
    return BoundLogger(context, None, _active.level)


@contextmanager
def log_context(**kw: JsonValue) -> Iterator[None]:
    """Add context to every entry logged inside the block, across awaits."""
    token = _scoped.set({**_scoped.get(), **kw})
    try:
        yield
    finally:
        _scoped.reset(token)
