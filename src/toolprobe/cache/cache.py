"""Per-server memo of discovery results.

An entry is written once a probe finishes extraction, including when it found
nothing: re-probing a silent server is expensive, so an empty result is a real
answer. Entries live until clear() unless the cache was built with a TTL.
"""

from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """Discovered tool names for one server id."""

    tools: tuple[str, ...]
    created_at: float
    expires_at: float | None = None

    @property
    def expired(self) -> bool:
        return self.expires_at is not None and time.monotonic() > self.expires_at


class DiscoveryCache(ABC):
    """Abstract base for discovery result caches."""

    @abstractmethod
    def get(self, server_id: str) -> tuple[str, ...] | None:
        """Cached tool names, or None on a miss (an empty tuple is a hit)."""
        ...

    @abstractmethod
    def set(self, server_id: str, tools: list[str] | tuple[str, ...]) -> None:
        ...

    @abstractmethod
    def invalidate(self, server_id: str) -> bool:
        """Remove one server's entry. Returns whether it existed."""
        ...

    @abstractmethod
    def clear(self) -> None:
        ...

    def __contains__(self, server_id: object) -> bool:
        return isinstance(server_id, str) and self.get(server_id) is not None


class MemoryCache(DiscoveryCache):
    """Thread-safe in-memory cache.

    Uses RLock for synchronization, so concurrent readers never observe a
    half-written entry. Values are stored as tuples and handed out as such.

    Args:
        ttl: Seconds an entry stays valid; None (default) keeps it until cleared

    Example:
        >>> cache = MemoryCache()
        >>> cache.set("sleep", ["sleep"])
        >>> cache.get("sleep")
        ('sleep',)
        >>> cache.set("silent", [])
        >>> cache.get("silent")
        ()
    """

    __slots__ = ("_entries", "_ttl", "_lock")

    def __init__(self, ttl: float | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._lock = threading.RLock()

    def get(self, server_id: str) -> tuple[str, ...] | None:
        with self._lock:
            entry = self._entries.get(server_id)
            if entry is None:
                return None
            if entry.expired:
                del self._entries[server_id]
                return None
            return entry.tools

    def set(self, server_id: str, tools: list[str] | tuple[str, ...]) -> None:
        now = time.monotonic()
        entry = CacheEntry(
            tools=tuple(tools),
            created_at=now,
            expires_at=now + self._ttl if self._ttl is not None else None,
        )
        with self._lock:
            self._entries[server_id] = entry

    def invalidate(self, server_id: str) -> bool:
        with self._lock:
            return self._entries.pop(server_id, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[str]:
        with self._lock:
            return [k for k, v in self._entries.items() if not v.expired]

    def stats(self) -> dict[str, object]:
        """Cache statistics for monitoring."""
        with self._lock:
            empty = sum(1 for v in self._entries.values() if not v.tools)
            return {
                "total_entries": len(self._entries),
                "empty_entries": empty,
                "ttl": self._ttl,
            }
