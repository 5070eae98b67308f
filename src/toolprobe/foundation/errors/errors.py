"""Error codes and the discovery exception type.

Discovery never lets an exception escape to its callers, so these codes mostly
travel inside an ErrorTrace. DiscoveryError exists for the few places (settings
parsing, config validation) where raising is the natural seam.
"""

from __future__ import annotations

from enum import StrEnum
from functools import lru_cache
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from .types import ErrorTrace


class ErrorCode(StrEnum):
    """Classification of discovery failures.

    Only SPAWN_FAILED, INVALID_CONFIG and UNKNOWN abort a call. The rest are
    diagnostics: the call still extracts and caches whatever it captured.
    """
    SPAWN_FAILED = "SPAWN_FAILED"
    WRITE_FAILED = "WRITE_FAILED"
    TIMEOUT = "TIMEOUT"
    PARSE_ERROR = "PARSE_ERROR"
    NO_TOOLS = "NO_TOOLS"
    INVALID_CONFIG = "INVALID_CONFIG"
    UNKNOWN = "UNKNOWN"


# Pattern -> code, checked in insertion order
_PATTERN_CODES: dict[str, ErrorCode] = {
    "timeout": ErrorCode.TIMEOUT,
    "brokenpipe": ErrorCode.WRITE_FAILED,
    "connectionreset": ErrorCode.WRITE_FAILED,
    "filenotfound": ErrorCode.SPAWN_FAILED,
    "permission": ErrorCode.SPAWN_FAILED,
    "oserror": ErrorCode.SPAWN_FAILED,
    "json": ErrorCode.PARSE_ERROR,
    "decode": ErrorCode.PARSE_ERROR,
    "validation": ErrorCode.INVALID_CONFIG,
    "value": ErrorCode.INVALID_CONFIG,
}
_PATTERN_KEYS = tuple(_PATTERN_CODES)


@lru_cache(maxsize=256)
def _classify_cached(exc_key: str) -> ErrorCode:
    haystack = exc_key.lower()
    for pattern in _PATTERN_KEYS:
        if pattern in haystack:
            return _PATTERN_CODES[pattern]
    return ErrorCode.UNKNOWN


def classify_exception(exc: BaseException) -> ErrorCode:
    """Map exception to error code via pattern matching on its type name."""
    return _classify_cached(type(exc).__name__)


class DiscoveryError(Exception):
    """Exception wrapping an ErrorTrace for raising."""

    __slots__ = ("trace",)

    def __init__(self, trace: ErrorTrace) -> None:
        self.trace = trace
        super().__init__(trace.message)

    @property
    def code(self) -> ErrorCode:
        return self.trace.error_code or ErrorCode.UNKNOWN

    @classmethod
    def create(cls, message: str, code: ErrorCode = ErrorCode.UNKNOWN, *, recoverable: bool = True) -> Self:
        from .types import trace
        return cls(trace(message, code=code, recoverable=recoverable))
