"""Concurrency primitives."""

from .wait import WaitResult, map_async, race, race_with_index

__all__ = ["WaitResult", "map_async", "race", "race_with_index"]
