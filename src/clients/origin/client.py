"""Origin document-store client: fetch users, matches and stats by id.

A small async client over the backend's REST document API. Documents are
decoded into typed records right here, at the fetch boundary. Batch user
lookups are chunked to the store's per-request id limit.

Endpoints:
  - GET /users/{id}            -> user document
  - GET /users?ids=a,b,c       -> {"documents": [user document, ...]}
  - GET /matches/{id}          -> match document
  - GET /stats/{user_id}       -> stats document
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from clients.http_errors import raise_for_status, translate_transport_error
from core.errors import DecodeError
from core.models import MatchRecord, StatsSnapshot, UserRecord
from core.retry import RetryPolicy

from .inputs import chunk_ids, normalize_batch_limit, normalize_id, normalize_ids

logger = logging.getLogger(__name__)

DEFAULT_BATCH_LIMIT = 30


class OriginClient:
    """Async client for the origin document store.

    Key behavior:
      - 404 -> NotFoundError; transient failures retried via RetryPolicy.
      - Limits concurrent requests with a semaphore.
      - fetch_users() silently omits ids the store does not return.
    """

    def __init__(
        self,
        *,
        base_url: str,
        timeout: float = 15.0,
        verify: bool = True,
        max_concurrency: int = 5,
        batch_limit: int = DEFAULT_BATCH_LIMIT,
        retry: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = (base_url or "").rstrip("/")
        self._timeout = float(timeout)
        self._verify = bool(verify)
        self._batch_limit = normalize_batch_limit(batch_limit)
        self._retry = retry or RetryPolicy.database()
        self._transport = transport
        self._sem = asyncio.Semaphore(max(1, int(max_concurrency)))

    @property
    def batch_limit(self) -> int:
        return self._batch_limit

    async def fetch_user(self, user_id: str) -> UserRecord:
        uid = normalize_id(user_id, field="user_id")
        doc = await self.fetch_user_document(uid)
        return UserRecord.from_document(doc, doc_id=uid)

    async def fetch_user_document(self, user_id: str) -> Mapping[str, Any]:
        """Raw user document, for callers that project a single field."""
        uid = normalize_id(user_id, field="user_id")
        doc = await self._get_json(f"/users/{uid}", context="fetch_user")
        if not isinstance(doc, Mapping):
            raise DecodeError("fetch_user: response is not a document")
        return doc

    async def fetch_users(self, user_ids: Sequence[str]) -> Dict[str, UserRecord]:
        ids = normalize_ids(user_ids)
        out: Dict[str, UserRecord] = {}
        for chunk in chunk_ids(ids, self._batch_limit):
            payload = await self._get_json(
                "/users",
                params={"ids": ",".join(chunk)},
                context="fetch_users",
            )
            for doc in _documents(payload):
                try:
                    user = UserRecord.from_document(doc)
                except DecodeError as e:
                    logger.warning("Skipping undecodable user document: %s", e)
                    continue
                out[user.id] = user
        return out

    async def fetch_match(self, match_id: str) -> MatchRecord:
        mid = normalize_id(match_id, field="match_id")
        doc = await self._get_json(f"/matches/{mid}", context="fetch_match")
        return MatchRecord.from_document(doc, doc_id=mid)

    async def fetch_stats(self, user_id: str) -> StatsSnapshot:
        uid = normalize_id(user_id, field="user_id")
        doc = await self._get_json(f"/stats/{uid}", context="fetch_stats")
        return StatsSnapshot.from_document(doc, user_id=uid)

    # --- HTTP helpers ---

    def _create_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Accept": "application/json", "User-Agent": "profile-cache-mcp"},
            timeout=self._timeout,
            verify=self._verify,
            transport=self._transport,
        )

    async def _get_json(
        self,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        context: str,
    ) -> Any:
        async def attempt() -> Any:
            try:
                # Limit concurrent requests across tasks
                async with self._sem, self._create_client() as client:
                    resp = await client.get(path, params=dict(params or {}))
            except httpx.HTTPError as e:
                raise translate_transport_error(e, context=f"{context} GET {path}") from e

            raise_for_status(resp, context=f"{context} GET {path}")
            try:
                return resp.json()
            except ValueError as e:
                raise DecodeError(f"{context}: response is not JSON") from e

        return await self._retry.run(attempt)


def _documents(payload: Any) -> List[Mapping[str, Any]]:
    docs = payload.get("documents") if isinstance(payload, Mapping) else None
    if not isinstance(docs, list):
        raise DecodeError("Batch response has no 'documents' list")
    return [d for d in docs if isinstance(d, Mapping)]
