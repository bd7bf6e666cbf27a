"""MCP tools for cache diagnostics and lifecycle.

Registers 'cache_statistics', 'clear_caches' and 'simulate_memory_warning'
on top of the injected CacheServices.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from caches.cache_factory import CacheServices
from core.errors import ValidationError

_SCOPES = ("all", "entities", "display_names", "images")


def register(mcp: FastMCP, *, services: CacheServices) -> None:
    @mcp.tool(name="cache_statistics")
    async def cache_statistics() -> Dict[str, Any]:
        """Return sizes and counters for every cache.

        Returns:
          - entities: entry count per registry cache (users, matches, stats)
          - entity_details: hits/misses/evictions per registry cache
          - display_names: display-name cache counters
          - images: memory/disk usage, pressure flag, in-flight fetches
        """
        images = services.images.statistics()
        return {
            "entities": services.registry.statistics(),
            "entity_details": {
                name: asdict(stats) for name, stats in services.registry.detailed_statistics().items()
            },
            "display_names": asdict(services.display_names.statistics()),
            "images": {
                **asdict(images),
                "disk_usage_percentage": round(images.disk_usage_percentage, 2),
            },
        }

    @mcp.tool(name="clear_caches")
    async def clear_caches(scope: str = "all") -> Dict[str, Any]:
        """Clear cached data (e.g. on sign-out).

        Params:
          - scope: "all", "entities", "display_names" or "images".

        Raises:
          ValidationError for an unknown scope.
        """
        s = (scope or "all").strip().lower()
        if s not in _SCOPES:
            raise ValidationError(f"Unknown scope {scope!r}; expected one of {', '.join(_SCOPES)}")

        if s in ("all", "entities"):
            services.registry.clear_all()
        if s in ("all", "display_names"):
            services.display_names.invalidate_all()
        if s in ("all", "images"):
            services.images.clear_all()
        return {"cleared": s}

    @mcp.tool(name="simulate_memory_warning")
    async def simulate_memory_warning() -> Dict[str, Any]:
        """Deliver a host low-memory signal to the caches, as the monitor would."""
        services.memory_monitor.notify()
        stats = services.images.statistics()
        return {
            "under_memory_pressure": stats.under_memory_pressure,
            "memory_warning_count": stats.memory_warning_count,
            "memory_count": stats.memory_count,
        }
