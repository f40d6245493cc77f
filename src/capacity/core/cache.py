"""Bounded, expiring in-process cache for tenant lookups.

Used for the two process-local caches of the routing layer (registry rows
and connection handles). Entries expire after a TTL and the least recently
used entry is evicted once max_size is reached. There is no lock: the only
callers are coroutines on one event loop and every operation is synchronous.
"""

from __future__ import annotations

import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Generic, TypeVar

from src.capacity.core.monitoring import tenant_cache_lookups_total

V = TypeVar("V")


class TTLCache(Generic[V]):
    """LRU cache with per-entry expiry."""

    def __init__(
        self,
        name: str,
        max_size: int = 1024,
        ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.name = name
        self._max_size = max_size
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, V]] = OrderedDict()

    def get(self, key: str) -> V | None:
        entry = self._entries.get(key)
        if entry is None:
            tenant_cache_lookups_total.labels(cache=self.name, result="miss").inc()
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            tenant_cache_lookups_total.labels(cache=self.name, result="expired").inc()
            return None
        self._entries.move_to_end(key)
        tenant_cache_lookups_total.labels(cache=self.name, result="hit").inc()
        return value

    def set(self, key: str, value: V) -> None:
        self._entries[key] = (self._clock() + self._ttl, value)
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_size:
            self._entries.popitem(last=False)

    def pop(self, key: str) -> V | None:
        """Invalidate a key, returning the value it held (if any)."""
        entry = self._entries.pop(key, None)
        return entry[1] if entry else None

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and self._clock() < entry[0]

    def __len__(self) -> int:
        return len(self._entries)
