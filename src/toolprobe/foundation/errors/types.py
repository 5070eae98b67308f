"""ErrorTrace: what went wrong during a probe, and where.

A trace is a frozen pydantic model. Each layer that forwards a failure adds an
operation (``launch:<server>``, ``discover``) instead of wrapping the
exception, so the message stays the OS or parser message the user needs.
"""

from __future__ import annotations

import traceback
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

from .errors import ErrorCode, classify_exception

JsonPrimitive = Union[str, int, float, bool, None]
JsonValue = Union[JsonPrimitive, list[Any], dict[str, Any]]
JsonDict = dict[str, Any]


class ErrorContext(BaseModel):
    """One step of the path a failure travelled."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    operation: str = Field(min_length=1)
    metadata: JsonDict = Field(default_factory=dict, repr=False)

    def __str__(self) -> str:
        if not self.metadata:
            return self.operation
        return f"{self.operation} ({', '.join(f'{k}={v}' for k, v in self.metadata.items())})"


class ErrorTrace(BaseModel):
    """Immutable failure record; with_operation and with_code return new traces."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    message: str = Field(min_length=1)
    error_code: ErrorCode | None = None
    recoverable: bool = True
    details: str | None = Field(default=None, repr=False)
    contexts: tuple[ErrorContext, ...] = ()

    @computed_field
    @property
    def root_operation(self) -> str | None:
        """Where the failure started."""
        return self.contexts[0].operation if self.contexts else None

    def __hash__(self) -> int:
        return hash((self.message, self.error_code, self.contexts))

    def with_operation(self, operation: str, **metadata: JsonValue) -> ErrorTrace:
        ctx = ErrorContext(operation=operation, metadata=metadata)
        return self.model_copy(update={"contexts": (*self.contexts, ctx)})

    def with_code(self, code: ErrorCode) -> ErrorTrace:
        return self.model_copy(update={"error_code": code})

    def format(self, *, include_details: bool = False) -> str:
        lines = [f"{self.message} [{self.error_code}]" if self.error_code else self.message]
        if self.contexts:
            lines.append("Context trace:")
            lines += [f"  - {ctx}" for ctx in self.contexts]
        if include_details and self.details:
            lines += ["Details:", self.details.rstrip()]
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.format()


def trace(
    message: str,
    *,
    code: ErrorCode | None = None,
    recoverable: bool = True,
    details: str | None = None,
) -> ErrorTrace:
    return ErrorTrace(message=message, error_code=code, recoverable=recoverable, details=details)


def trace_from_exc(exc: BaseException, *, operation: str = "", code: ErrorCode | None = None) -> ErrorTrace:
    """Trace for an exception; classified from its type unless code is given."""
    t = ErrorTrace(
        message=str(exc) or type(exc).__name__,
        error_code=code or classify_exception(exc),
        details="".join(traceback.format_exception(exc)),
    )
    return t.with_operation(operation) if operation else t
