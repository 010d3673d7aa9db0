"""Fixed-capacity memo store used by the XP calculator."""

import logging
import math
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Hashable


logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass
class CacheStats:
    """Snapshot of cache usage."""
    size: int
    capacity: int
    hits: int
    misses: int
    evictions: int

    @property
    def hit_rate(self) -> float:
        """Hit percentage (0-100)."""
        total = self.hits + self.misses
        return (self.hits / total) * 100 if total else 0.0


class BoundedCache:
    """
    Insertion-ordered cache with a hard capacity.

    When an insert would exceed ``capacity``, the oldest
    ``ceil(capacity * evict_fraction)`` entries are dropped in one sweep.
    Reads do not refresh an entry's position.
    """

    def __init__(self, capacity: int = 1000, evict_fraction: float = 0.2):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if not 0 < evict_fraction <= 1:
            raise ValueError(f"evict_fraction must be in (0, 1], got {evict_fraction}")

        self.capacity = capacity
        self.evict_count = max(1, math.ceil(capacity * evict_fraction))
        self._data: OrderedDict[Hashable, Any] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._data

    def get(self, key: Hashable, default: Any = None) -> Any:
        with self._lock:
            value = self._data.get(key, _MISSING)
            if value is _MISSING:
                self._misses += 1
                return default
            self._hits += 1
            return value

    def set(self, key: Hashable, value: Any) -> None:
        with self._lock:
            if key not in self._data and len(self._data) >= self.capacity:
                self._evict_oldest()
            self._data[key] = value

    def get_or_compute(self, key: Hashable, compute: Callable[[], Any]) -> Any:
        """Return the cached value for ``key``, computing and storing it on a miss."""
        value = self.get(key, _MISSING)
        if value is _MISSING:
            value = compute()
            self.set(key, value)
        return value

    def _evict_oldest(self):
        count = min(self.evict_count, len(self._data))
        for _ in range(count):
            self._data.popitem(last=False)
        self._evictions += count
        logger.debug(f"Cache full ({self.capacity}), evicted {count} oldest entries")

    def keys(self) -> list:
        """Keys in insertion order, oldest first."""
        with self._lock:
            return list(self._data.keys())

    def clear(self, reset_stats: bool = False):
        with self._lock:
            self._data.clear()
            if reset_stats:
                self._hits = self._misses = self._evictions = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                size=len(self._data),
                capacity=self.capacity,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
            )


class NullCache(BoundedCache):
    """Cache stand-in that never stores anything (used when caching is off)."""

    def __init__(self):
        super().__init__(capacity=1)

    def set(self, key: Hashable, value: Any) -> None:
        return None


def make_cache(enabled: bool, capacity: int = 1000,
               evict_fraction: float = 0.2) -> BoundedCache:
    """Build the cache for a calculator."""
    if not enabled:
        return NullCache()
    return BoundedCache(capacity=capacity, evict_fraction=evict_fraction)
