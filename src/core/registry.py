"""Process-wide set of named entity caches.

One TTLCache per cached entity type, a coordinated clear (sign-out / reset),
per-cache statistics, and a single periodic expiry sweep. The registry is
constructed once at startup and passed by reference; nothing here is a
module-level singleton.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional

from core.cache import CacheStats, TTLCache
from core.models import MatchRecord, StatsSnapshot, UserRecord
from core.periodic import PeriodicTask

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 5 * 60


class CacheRegistry:
    def __init__(
        self,
        *,
        users: Optional[TTLCache[UserRecord]] = None,
        matches: Optional[TTLCache[MatchRecord]] = None,
        stats: Optional[TTLCache[StatsSnapshot]] = None,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        # Explicit None checks: an empty TTLCache is falsy
        self.users: TTLCache[UserRecord] = (
            users if users is not None else TTLCache(ttl_seconds=300, capacity=100)
        )
        self.matches: TTLCache[MatchRecord] = (
            matches if matches is not None else TTLCache(ttl_seconds=180, capacity=50)
        )
        self.stats: TTLCache[StatsSnapshot] = (
            stats if stats is not None else TTLCache(ttl_seconds=60, capacity=20)
        )

        self._sweeper = PeriodicTask(
            name="cache-registry-sweep",
            interval_seconds=sweep_interval_seconds,
            func=self.sweep_expired,
        )

    @property
    def caches(self) -> Mapping[str, TTLCache]:
        return {"users": self.users, "matches": self.matches, "stats": self.stats}

    @property
    def sweeping(self) -> bool:
        return self._sweeper.running

    def clear_all(self) -> None:
        for cache in self.caches.values():
            cache.clear()
        logger.info("All caches cleared")

    def reset(self) -> None:
        self.clear_all()
        for cache in self.caches.values():
            cache.reset_stats()

    def statistics(self) -> Dict[str, int]:
        return {name: cache.size() for name, cache in self.caches.items()}

    def detailed_statistics(self) -> Dict[str, CacheStats]:
        return {name: cache.stats() for name, cache in self.caches.items()}

    def sweep_expired(self) -> Dict[str, int]:
        removed = {name: cache.sweep_expired() for name, cache in self.caches.items()}
        logger.debug("Cache cleanup completed: %s", removed)
        return removed

    # --- lifecycle ---

    def start(self) -> None:
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()

    async def __aenter__(self) -> "CacheRegistry":
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()
