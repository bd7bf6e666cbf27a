"""Caller-side fetch-on-miss for the registry's entity caches.

The registry caches never reach the origin themselves: this service looks a
record up, fetches it from the origin on a miss, stores it back, and
invalidates on known mutations (profile edits, sign-out).
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, TypeVar

from clients.origin.client import OriginClient
from core.cache import TTLCache
from core.models import MatchRecord, StatsSnapshot, UserRecord
from core.registry import CacheRegistry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProfileService:
    def __init__(self, *, registry: CacheRegistry, origin: OriginClient) -> None:
        self._registry = registry
        self._origin = origin

    async def get_user(self, user_id: str) -> UserRecord:
        return await self._cached(self._registry.users, user_id, lambda: self._origin.fetch_user(user_id))

    async def get_match(self, match_id: str) -> MatchRecord:
        return await self._cached(self._registry.matches, match_id, lambda: self._origin.fetch_match(match_id))

    async def get_stats(self, user_id: str) -> StatsSnapshot:
        return await self._cached(self._registry.stats, user_id, lambda: self._origin.fetch_stats(user_id))

    def user_updated(self, user_id: str) -> None:
        # The stored profile and its derived counters are stale after an edit
        self._registry.users.remove(user_id)
        self._registry.stats.remove(user_id)
        logger.debug("Invalidated cached profile for %s", user_id)

    def signed_out(self) -> None:
        self._registry.clear_all()

    async def _cached(self, cache: TTLCache[T], key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        cached = cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached

        logger.debug("Cache miss for %s, fetching from origin", key)
        value = await fetch()
        cache.set(key, value)
        return value
