"""Observability: structured logging and discovery diagnostics."""

from .diagnostics import (
    CallbackSink,
    CollectingSink,
    Diagnostic,
    DiagnosticLevel,
    DiagnosticSink,
    Emitter,
    FanoutSink,
    LoggerSink,
    NullSink,
)
from .logging import (
    BoundLogger,
    ConsoleRenderer,
    JsonRenderer,
    LogEntry,
    LogRenderer,
    NoOpRenderer,
    configure_from_settings,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    # Logging
    "BoundLogger", "ConsoleRenderer", "JsonRenderer", "LogEntry", "LogRenderer", "NoOpRenderer",
    "configure_from_settings", "configure_logging", "get_logger", "log_context",
    # Diagnostics
    "CallbackSink", "CollectingSink", "Diagnostic", "DiagnosticLevel", "DiagnosticSink",
    "Emitter", "FanoutSink", "LoggerSink", "NullSink",
]
