"""Projection cache with batch prefetch.

Caches one frequently needed scalar projection of an entity (for example a
user's display name) keyed by entity id. Misses are fetched from an injected
ProjectionOrigin; prefetch_batch() warms many ids with chunked batch queries.
"""

from __future__ import annotations

import logging
from typing import Dict, Generic, Iterable, List, Optional, TypeVar

from core.cache import CacheStats, TTLCache
from core.inflight import SingleFlight
from core.interfaces import ProjectionOrigin
from core.periodic import PeriodicTask

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_TTL = 5 * 60
DEFAULT_CAPACITY = 500
DEFAULT_SWEEP_INTERVAL = 10 * 60


def chunked(items: List[str], size: int) -> Iterable[List[str]]:
    step = max(1, int(size))
    for i in range(0, len(items), step):
        yield items[i : i + step]


class NamedEntityCache(Generic[V]):
    """TTL cache of entity projections with batch warm-up.

    Purpose:
      - get_projection(id, ttl_override=None) -> V
      - prefetch_batch(ids) -> int

    Key behavior:
      - Fresh hits never reach the origin; concurrent misses for one id share
        a single origin fetch.
      - NotFoundError from the origin propagates from get_projection but is
        silent in prefetch_batch (missing ids simply stay uncached).
      - Oldest 20% evicted when full; own periodic expiry sweep.
    """

    def __init__(
        self,
        *,
        origin: ProjectionOrigin[V],
        name: str = "projection",
        ttl_seconds: float = DEFAULT_TTL,
        capacity: int = DEFAULT_CAPACITY,
        sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL,
    ) -> None:
        self._origin = origin
        self._name = name
        self._cache: TTLCache[V] = TTLCache(ttl_seconds=ttl_seconds, capacity=capacity)
        self._inflight: SingleFlight[str, V] = SingleFlight()
        self._sweeper = PeriodicTask(
            name=f"{name}-cache-sweep",
            interval_seconds=sweep_interval_seconds,
            func=self._sweep,
        )

    @property
    def name(self) -> str:
        return self._name

    async def get_projection(self, entity_id: str, ttl_override: Optional[float] = None) -> V:
        cached = self._cache.get(entity_id, ttl=ttl_override)
        if cached is not None:
            logger.debug("%s cache HIT for %s", self._name, entity_id)
            return cached

        logger.debug("%s cache MISS for %s", self._name, entity_id)
        return await self._inflight.run(entity_id, lambda: self._fetch_one(entity_id))

    async def prefetch_batch(self, entity_ids: Iterable[str]) -> int:
        # Keep first-seen order, drop duplicates and ids that are already fresh
        uncached: List[str] = []
        seen = set()
        for entity_id in entity_ids:
            if not entity_id or entity_id in seen:
                continue
            seen.add(entity_id)
            if entity_id not in self._cache:
                uncached.append(entity_id)

        if not uncached:
            logger.debug("All %s projections already cached", self._name)
            return 0

        logger.debug("Prefetching %d %s projections", len(uncached), self._name)
        stored = 0
        for chunk in chunked(uncached, self._origin.batch_limit):
            found: Dict[str, V] = dict(await self._origin.fetch_projections(chunk))
            for entity_id, value in found.items():
                self._cache.set(entity_id, value)
                stored += 1
        return stored

    def invalidate(self, entity_id: str) -> None:
        self._cache.remove(entity_id)
        logger.debug("Invalidated %s cache for %s", self._name, entity_id)

    def invalidate_all(self) -> None:
        self._cache.clear()
        logger.debug("Invalidated all cached %s projections", self._name)

    def size(self) -> int:
        return self._cache.size()

    def statistics(self) -> CacheStats:
        return self._cache.stats()

    # --- lifecycle ---

    def start(self) -> None:
        self._sweeper.start()

    async def stop(self) -> None:
        await self._sweeper.stop()

    # --- internals ---

    async def _fetch_one(self, entity_id: str) -> V:
        value = await self._origin.fetch_projection(entity_id)
        self._cache.set(entity_id, value)
        return value

    def _sweep(self) -> int:
        removed = self._cache.sweep_expired()
        if removed:
            logger.debug("Cleaned %d expired %s cache entries", removed, self._name)
        return removed
