"""In-memory TTL cache keyed by rounded coordinates.

Entries expire lazily: ``get`` checks ``expires_at`` and drops stale entries,
there is no background sweep. There is no capacity bound either; keys are
limited to the distinct ~100 m coordinate buckets that callers ask about.

``SingleFlight`` coalesces concurrent misses for the same key so that a cold
bucket triggers one upstream fetch, not one per waiting request.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from dawn_chorus.reference.birding import COORD_DECIMALS

T = TypeVar("T")


def round_coord(value: float) -> float:
    """Round a coordinate to ~100 m (3 decimals)."""
    return round(value, COORD_DECIMALS)


def make_key(lat: float, lon: float) -> str:
    """Build the ``"{lat},{lon}"`` cache key from rounded coordinates."""
    return f"{round_coord(lat):.{COORD_DECIMALS}f},{round_coord(lon):.{COORD_DECIMALS}f}"


@dataclass
class CacheEntry:
    value: Any
    expires_at: float


class TTLCache:
    """Key -> value store with per-entry expiry."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None if missing or expired.

        Expired entries are removed as a side effect.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return None
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value`` under ``key``, replacing any existing entry."""
        with self._lock:
            self._entries[key] = CacheEntry(value=value, expires_at=self._clock() + ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of stored entries, including expired ones not yet read."""
        with self._lock:
            return len(self._entries)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries


class SingleFlight(Generic[T]):
    """Run at most one call per key at a time; concurrent callers share its outcome."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, Future[T]] = {}

    def do(self, key: str, fn: Callable[[], T]) -> T:
        """Call ``fn`` unless a call for ``key`` is already running, then wait on that one.

        The leader's exception is re-raised in every waiter.
        """
        with self._lock:
            future = self._calls.get(key)
            leader = future is None
            if future is None:
                future = Future()
                self._calls[key] = future

        if not leader:
            return future.result()

        try:
            result = fn()
        except BaseException as exc:
            future.set_exception(exc)
            raise
        else:
            future.set_result(result)
            return result
        finally:
            with self._lock:
                self._calls.pop(key, None)

    def in_flight(self) -> int:
        with self._lock:
            return len(self._calls)
