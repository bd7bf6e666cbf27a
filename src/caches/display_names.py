"""Display-name cache: a NamedEntityCache[str] projecting users to full names."""

from __future__ import annotations

from typing import Dict, Sequence

from caches.named_cache import DEFAULT_CAPACITY, DEFAULT_SWEEP_INTERVAL, DEFAULT_TTL, NamedEntityCache
from clients.origin.client import OriginClient
from core.errors import NotFoundError

DisplayNameCache = NamedEntityCache[str]


class UserDirectory:
    # ProjectionOrigin[str] over the origin users collection
    def __init__(self, client: OriginClient) -> None:
        self._client = client

    @property
    def batch_limit(self) -> int:
        return self._client.batch_limit

    async def fetch_projection(self, entity_id: str) -> str:
        doc = await self._client.fetch_user_document(entity_id)
        name = doc.get("fullName")
        # A user without a display name counts as not found
        if not isinstance(name, str) or not name.strip():
            raise NotFoundError(f"User has no display name: {entity_id}")
        return name.strip()

    async def fetch_projections(self, entity_ids: Sequence[str]) -> Dict[str, str]:
        users = await self._client.fetch_users(entity_ids)
        return {uid: u.full_name for uid, u in users.items() if u.full_name}


def build_display_name_cache(
    client: OriginClient,
    *,
    ttl_seconds: float = DEFAULT_TTL,
    capacity: int = DEFAULT_CAPACITY,
    sweep_interval_seconds: float = DEFAULT_SWEEP_INTERVAL,
) -> DisplayNameCache:
    return NamedEntityCache(
        origin=UserDirectory(client),
        name="display-name",
        ttl_seconds=ttl_seconds,
        capacity=capacity,
        sweep_interval_seconds=sweep_interval_seconds,
    )
