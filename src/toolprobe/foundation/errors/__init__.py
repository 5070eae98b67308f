"""Error handling for toolprobe.

- ErrorCode: classification of discovery failures
- DiscoveryError: exception wrapping an ErrorTrace
- Result/Ok/Err: failures as values on the launch/probe path
- ErrorTrace/ErrorContext: error context stacking
"""

from .errors import DiscoveryError, ErrorCode, classify_exception
from .result import Err, Ok, Result
from .types import ErrorContext, ErrorTrace, JsonDict, JsonValue, trace, trace_from_exc

__all__ = [
    "ErrorCode", "DiscoveryError", "classify_exception",
    "Result", "Ok", "Err",
    "ErrorContext", "ErrorTrace", "JsonDict", "JsonValue", "trace", "trace_from_exc",
]
