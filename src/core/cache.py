"""In-memory caches used by every typed cache in the project.

TTLCache stores values with a monotonic insertion timestamp, never serves an
entry older than its TTL, and evicts the oldest fifth of its entries in one
pass when it is full. LRUCostCache is the cost-bounded LRU map backing the
image memory tier.
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(slots=True)
class CacheEntry(Generic[T]):
    # Stores value + monotonic insertion time
    value: T
    inserted_at: float  # time.monotonic()

    def age(self, now: float) -> float:
        return now - self.inserted_at


@dataclass(frozen=True)
class CacheStats:
    """Point-in-time counters for one TTLCache."""

    size: int
    capacity: int
    ttl_seconds: float
    hits: int
    misses: int
    evictions: int
    expirations: int
    oldest_age: Optional[float] = None
    newest_age: Optional[float] = None

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class TTLCache(Generic[T]):
    """Bounded, expiring store for one semantic category of value.

    Key behavior:
      - get() never returns an entry whose age exceeds the TTL; stale entries
        are dropped on access.
        A per-call ttl can only narrow that bound.
      - set() on a full cache evicts the oldest ceil(capacity / 5) entries
        (by insertion time) before inserting, so size() <= capacity always.
      - sweep_expired() reclaims stale entries nobody asks for again.

    All operations on one instance are serialized by a lock.
    """

    def __init__(self, *, ttl_seconds: float, capacity: int) -> None:
        self._ttl = float(ttl_seconds)
        self._capacity = max(1, int(capacity))
        # Insertion order == age order: overwrites are moved to the end
        self._store: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._lock = threading.Lock()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str, *, ttl: Optional[float] = None) -> Optional[T]:
        max_age = self._ttl if ttl is None else min(self._ttl, float(ttl))
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return None

            if entry.age(time.monotonic()) > max_age:
                del self._store[key]
                self._expirations += 1
                self._misses += 1
                return None

            self._hits += 1
            return entry.value

    def set(self, key: str, value: T) -> None:
        with self._lock:
            if key in self._store:
                del self._store[key]
            elif len(self._store) >= self._capacity:
                self._evict_oldest()

            self._store[key] = CacheEntry(value=value, inserted_at=time.monotonic())

    def remove(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def size(self) -> int:
        with self._lock:
            return len(self._store)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._store.keys())

    def sweep_expired(self) -> int:
        with self._lock:
            now = time.monotonic()
            stale = [k for k, e in self._store.items() if e.age(now) > self._ttl]
            for k in stale:
                del self._store[k]
            self._expirations += len(stale)
            return len(stale)

    def reset_stats(self) -> None:
        with self._lock:
            self._hits = self._misses = self._evictions = self._expirations = 0

    def stats(self) -> CacheStats:
        with self._lock:
            now = time.monotonic()
            ages = [e.age(now) for e in self._store.values()]
            return CacheStats(
                size=len(self._store),
                capacity=self._capacity,
                ttl_seconds=self._ttl,
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                expirations=self._expirations,
                oldest_age=max(ages) if ages else None,
                newest_age=min(ages) if ages else None,
            )

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            entry = self._store.get(key)  # type: ignore[arg-type]
            return entry is not None and entry.age(time.monotonic()) <= self._ttl

    def _evict_oldest(self) -> None:
        # Caller holds the lock. Front of the OrderedDict is the oldest insert.
        count = min(len(self._store), max(1, math.ceil(self._capacity / 5)))
        for _ in range(count):
            self._store.popitem(last=False)
        self._evictions += count


class LRUCostCache(Generic[T]):
    """LRU map bounded by entry count and by the summed cost of its values."""

    def __init__(
        self,
        *,
        max_cost: int,
        max_count: int,
        cost: Callable[[T], int],
    ) -> None:
        self._max_cost = max(0, int(max_cost))
        self._max_count = max(1, int(max_count))
        self._cost_of = cost
        self._store: "OrderedDict[str, tuple[T, int]]" = OrderedDict()
        self._total_cost = 0
        self._lock = threading.Lock()

    @property
    def max_cost(self) -> int:
        return self._max_cost

    @property
    def max_count(self) -> int:
        return self._max_count

    @property
    def total_cost(self) -> int:
        with self._lock:
            return self._total_cost

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            item = self._store.get(key)
            if item is None:
                return None
            # Move to end to mark as recently used
            self._store.move_to_end(key, last=True)
            return item[0]

    def set(self, key: str, value: T) -> bool:
        """Store value; returns False when its cost alone exceeds the limit."""
        cost = max(0, int(self._cost_of(value)))
        with self._lock:
            self._discard(key)
            if cost > self._max_cost:
                return False

            self._store[key] = (value, cost)
            self._total_cost += cost

            # Evict least recently used entries until both bounds hold
            while len(self._store) > self._max_count or self._total_cost > self._max_cost:
                _, (_, old_cost) = self._store.popitem(last=False)
                self._total_cost -= old_cost
            return True

    def remove(self, key: str) -> None:
        with self._lock:
            self._discard(key)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._total_cost = 0

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._store

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _discard(self, key: str) -> None:
        item = self._store.pop(key, None)
        if item is not None:
            self._total_cost -= item[1]
