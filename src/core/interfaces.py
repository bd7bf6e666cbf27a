"""Core protocol and interface definitions.

Defines the collaborators the caches depend on: a projection origin for
NamedEntityCache and a blob fetcher for ImageCache. The caches never talk to
the network directly; concrete clients live under `clients/`.
"""

from __future__ import annotations

from typing import Mapping, Protocol, Sequence, TypeVar

V_co = TypeVar("V_co", covariant=True)


class ProjectionOrigin(Protocol[V_co]):
    """Contract for an origin able to project entities by id."""

    @property
    def batch_limit(self) -> int:
        ...

    async def fetch_projection(self, entity_id: str) -> V_co:
        """Return the projection or raise NotFoundError."""
        ...

    async def fetch_projections(self, entity_ids: Sequence[str]) -> Mapping[str, V_co]:
        """Return projections for at most `batch_limit` ids; missing ids are omitted."""
        ...


class BlobFetcher(Protocol):
    """Contract for anything that can download raw bytes for a URL."""

    async def fetch(self, url: str) -> bytes:
        ...
