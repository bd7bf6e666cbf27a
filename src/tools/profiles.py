"""MCP tool returning cached user profiles.

Registers 'get_user_profile', which goes through ProfileService (registry
lookup first, origin fetch on a miss).
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from clients.origin.inputs import normalize_id
from services.profile_service import ProfileService


def register(mcp: FastMCP, *, profiles: ProfileService) -> None:
    @mcp.tool(name="get_user_profile")
    async def get_user_profile(user_id: str, include_stats: bool = False) -> Dict[str, Any]:
        """Return a user's profile record (and optionally their stats).

        Raises:
          ValidationError for a bad id; NotFoundError if the user does not exist.
        """
        uid = normalize_id(user_id, field="user_id")
        user = await profiles.get_user(uid)
        out: Dict[str, Any] = {"user": asdict(user)}
        if include_stats:
            out["stats"] = asdict(await profiles.get_stats(uid))
        return out
