"""Wait combinators: races with cancellation of losers, and bounded fan-out.

In a race the first awaitable to complete wins and the rest are cancelled.

A probe races "process exited and pipes drained" against "deadline reached".
Whichever finishes first resolves the exchange; the loser is cancelled and
awaited so nothing is left running when the race returns.

Example:
    >>> outcome = await race_with_index(proc.wait(), asyncio.sleep(10))
    >>> timed_out = outcome.index == 1
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
U = TypeVar("U")


@dataclass(slots=True)
class WaitResult(Generic[T]):
    """Result of a race with metadata.

    Attributes:
        value: The winner's result
        index: Position of the winner among the racers
        elapsed: Seconds until the winner finished
        cancelled: Number of racers cancelled
    """

    value: T
    index: int = 0
    elapsed: float = 0.0
    cancelled: int = 0


async def _settle(tasks: list[asyncio.Future[T]]) -> int:
    """Cancel unfinished tasks and wait for them. Returns how many were cancelled."""
    pending = [t for t in tasks if not t.done()]
    for task in pending:
        task.cancel()
    if pending:
        await asyncio.gather(*pending, return_exceptions=True)
    return len(pending)


async def race_with_index(
    *aws: Awaitable[T],
    timeout: float | None = None,
) -> WaitResult[T]:
    """Race awaitables and report which one won.

    If several finish in the same loop iteration the lowest index wins, so the
    outcome does not depend on set ordering.

    Raises:
        ValueError: If no awaitables are given
        TimeoutError: If timeout expires before any completes
        Exception: Whatever the winning awaitable raised
    """
    if not aws:
        raise ValueError("race_with_index() requires at least one awaitable")

    start = time.monotonic()
    tasks = [asyncio.ensure_future(a) for a in aws]

    try:
        done, _ = await asyncio.wait(tasks, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
        if not done:
            raise TimeoutError(f"No racer finished within {timeout}s")
        index = min(i for i, t in enumerate(tasks) if t in done)
    finally:
        # Also runs on external cancellation, so racers never outlive the race
        cancelled = await _settle(tasks)

    return WaitResult(
        value=tasks[index].result(),
        index=index,
        elapsed=time.monotonic() - start,
        cancelled=cancelled,
    )


async def race(*aws: Awaitable[T], timeout: float | None = None) -> T:
    """Race awaitables - first to complete wins, its result (or exception) is returned."""
    if not aws:
        raise ValueError("race() requires at least one awaitable")
    return (await race_with_index(*aws, timeout=timeout)).value


async def map_async(
    func: Callable[[T], Awaitable[U]],
    items: Sequence[T],
    *,
    limit: int | None = None,
) -> list[U]:
    """Apply an async function to every item with bounded concurrency.

    Results keep input order. The first exception propagates once every call
    has settled.

    Example:
        >>> results = await map_async(probe, servers, limit=4)
    """
    if not items:
        return []
    if limit is None or limit >= len(items):
        return list(await asyncio.gather(*(func(item) for item in items)))

    semaphore = asyncio.Semaphore(limit)

    async def limited_call(item: T) -> U:
        async with semaphore:
            return await func(item)

    return list(await asyncio.gather(*(limited_call(item) for item in items)))
