"""Read-through cache for fetched resource lists.

Entries are keyed by `(resource, filter)` and dropped either when their
TTL lapses or when the owner invalidates the resource after a mutation.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Hashable, Optional


class QueryCache:
    def __init__(self, ttl_seconds: float = 60.0, max_entries: int = 256, clock=time.monotonic):
        self._entries: dict[tuple[str, Hashable], tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock

    def get_or_load(self, resource: str, key: Hashable, loader: Callable[[], Any]) -> Any:
        """Return the cached value for `(resource, key)`, calling `loader` on a miss.

        Loader exceptions propagate and nothing is cached for that key.
        """
        cached = self.get(resource, key)
        if cached is not None:
            return cached
        value = loader()
        self.put(resource, key, value)
        return value

    def get(self, resource: str, key: Hashable) -> Optional[Any]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get((resource, key))
            if entry is None:
                return None
            stored_at, value = entry
            if now - stored_at >= self._ttl_seconds:
                self._entries.pop((resource, key), None)
                return None
            return value

    def put(self, resource: str, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[(resource, key)] = (self._clock(), value)
            if len(self._entries) > self._max_entries:
                # evict oldest first
                oldest = sorted(self._entries.items(), key=lambda item: item[1][0])
                for entry_key, _ in oldest[: len(self._entries) - self._max_entries]:
                    self._entries.pop(entry_key, None)

    def invalidate(self, *resources: str) -> int:
        """Drop every entry of the given resources; return how many were dropped."""
        with self._lock:
            doomed = [k for k in self._entries if k[0] in resources]
            for k in doomed:
                self._entries.pop(k, None)
            return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
