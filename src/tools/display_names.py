"""MCP tools over the display-name cache.

Registers 'get_display_name' (cached single lookup) and
'prefetch_display_names' (batch warm-up).
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from caches.display_names import DisplayNameCache
from clients.origin.inputs import normalize_id, normalize_ids
from core.errors import ValidationError


def register(mcp: FastMCP, *, display_names: DisplayNameCache) -> None:
    @mcp.tool(name="get_display_name")
    async def get_display_name(user_id: str, ttl_seconds: Optional[float] = None) -> str:
        """Return a user's display name, served from cache when fresh.

        Params:
          - user_id: origin user id (required).
          - ttl_seconds: optional stricter freshness bound for this lookup.

        Raises:
          ValidationError for a bad id or ttl; NotFoundError if the user does
          not exist.
        """
        uid = normalize_id(user_id, field="user_id")
        if ttl_seconds is not None and ttl_seconds < 0:
            raise ValidationError("ttl_seconds must be >= 0")
        return await display_names.get_projection(uid, ttl_override=ttl_seconds)

    @mcp.tool(name="prefetch_display_names")
    async def prefetch_display_names(user_ids: List[str]) -> Dict[str, Any]:
        """Warm the display-name cache for many users with batched lookups.

        Users unknown to the origin are skipped silently.
        """
        ids = normalize_ids(user_ids or [])
        cached = await display_names.prefetch_batch(ids)
        return {"requested": len(ids), "cached": cached, "cache_size": display_names.size()}
