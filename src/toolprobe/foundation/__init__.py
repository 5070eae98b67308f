"""Foundation: configuration and error handling.

Testing helpers live in ``toolprobe.foundation.testing`` and are imported
explicitly, since they depend on the discovery package.
"""

from .config import DiscoverySettings, LoggingSettings, ToolprobeSettings, clear_settings_cache, get_settings
from .errors import (
    DiscoveryError,
    Err,
    ErrorCode,
    ErrorContext,
    ErrorTrace,
    Ok,
    Result,
    classify_exception,
    trace,
    trace_from_exc,
)

__all__ = [
    "DiscoverySettings", "LoggingSettings", "ToolprobeSettings", "clear_settings_cache", "get_settings",
    "DiscoveryError", "Err", "ErrorCode", "ErrorContext", "ErrorTrace", "Ok", "Result",
    "classify_exception", "trace", "trace_from_exc",
]
