"""Tests for the discovery result cache."""

from __future__ import annotations

import threading
import time

from toolprobe.cache import MemoryCache


def test_miss_returns_none() -> None:
    assert MemoryCache().get("unknown") is None


def test_empty_result_is_a_hit() -> None:
    cache = MemoryCache()
    cache.set("silent", [])
    assert cache.get("silent") == ()
    assert "silent" in cache


def test_values_are_stored_as_tuples() -> None:
    cache = MemoryCache()
    tools = ["a", "b"]
    cache.set("s", tools)
    tools.append("c")
    assert cache.get("s") == ("a", "b")


def test_invalidate_and_clear() -> None:
    cache = MemoryCache()
    cache.set("a", ["x"])
    cache.set("b", ["y"])
    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert cache.keys() == ["b"]
    cache.clear()
    assert cache.size == 0


def test_entries_without_ttl_never_expire() -> None:
    cache = MemoryCache()
    cache.set("s", ["x"])
    time.sleep(0.05)
    assert cache.get("s") == ("x",)


def test_ttl_expires_entries() -> None:
    cache = MemoryCache(ttl=0.05)
    cache.set("s", ["x"])
    assert cache.get("s") == ("x",)
    time.sleep(0.1)
    assert cache.get("s") is None
    assert "s" not in cache


def test_stats_count_empty_entries() -> None:
    cache = MemoryCache(ttl=60)
    cache.set("a", [])
    cache.set("b", ["x"])
    assert cache.stats() == {"total_entries": 2, "empty_entries": 1, "ttl": 60}


def test_concurrent_writers_never_tear_entries() -> None:
    cache = MemoryCache()
    tools = [f"tool_{i}" for i in range(50)]

    def writer(n: int) -> None:
        for _ in range(200):
            cache.set("shared", tools)
            got = cache.get("shared")
            assert got is None or got == tuple(tools)
            cache.set(f"own_{n}", [str(n)])

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert cache.get("shared") == tuple(tools)
    assert cache.size == 9
