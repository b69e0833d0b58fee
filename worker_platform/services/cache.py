"""
Process-local memo caches keyed by call argument.

Helpers receive a cache instance instead of using module globals, so tests can
drive the clock and clear entries deterministically. There is no cross-process
invalidation: an update made elsewhere shows up only after the TTL expires.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable


class TTLCache:
    """Maps key -> (value, inserted_at); entries older than ttl_seconds are reloaded."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, tuple[Any, float]] = {}
        self._lock = threading.Lock()

    def _is_fresh(self, inserted_at: float) -> bool:
        return self._clock() - inserted_at < self.ttl_seconds

    def get_or_load(self, key: Hashable, loader: Callable[[], Any]) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry[1]):
                return entry[0]

        # Loader runs unlocked; concurrent misses on one key may each load.
        value = loader()
        with self._lock:
            self._entries[key] = (value, self._clock())
        return value

    def invalidate(self, key: Hashable | None = None) -> None:
        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and self._is_fresh(entry[1])

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for _, inserted_at in self._entries.values() if self._is_fresh(inserted_at))


class PermanentCache(TTLCache):
    """Entries never expire. Used for data that is immutable once created."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        super().__init__(ttl_seconds=float("inf"), clock=clock)
