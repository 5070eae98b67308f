"""Ok / Err values for operations that report failure instead of raising.

Launching and probing return ``Result[T, ErrorTrace]`` so the engine can turn
any failure into a diagnostic and an empty tool list without try/except at
every step. Both variants are frozen dataclasses and support structural
pattern matching:

    >>> match await launcher.launch(request):
    ...     case Ok(session): ...
    ...     case Err(trace): log.error(trace.message)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Literal, NoReturn, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")
U = TypeVar("U")
F = TypeVar("F")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success carrying a value."""

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_err(self) -> NoReturn:
        raise RuntimeError(f"unwrap_err() called on {self!r}")

    def unwrap_or(self, default: object) -> T:
        return self.value

    def ok(self) -> T:
        return self.value

    def err(self) -> None:
        return None

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[..., object]) -> Ok[T]:
        return self

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return f(self.value)

    def inspect_err(self, f: Callable[..., object]) -> Ok[T]:
        return self

    def match(self, *, ok: Callable[[T], U], err: Callable[..., U]) -> U:
        return ok(self.value)

    def __bool__(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure carrying an error value, usually an ErrorTrace."""

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> NoReturn:
        raise RuntimeError(f"unwrap() called on {self!r}")

    def unwrap_err(self) -> E:
        return self.error

    def unwrap_or(self, default: U) -> U:
        return default

    def ok(self) -> None:
        return None

    def err(self) -> E:
        return self.error

    def map(self, f: Callable[..., object]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def flat_map(self, f: Callable[..., object]) -> Err[E]:
        return self

    def inspect_err(self, f: Callable[[E], object]) -> Err[E]:
        f(self.error)
        return self

    def match(self, *, ok: Callable[..., U], err: Callable[[E], U]) -> U:
        return err(self.error)

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Union[Ok[T], Err[E]]
