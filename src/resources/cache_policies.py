# src/resources/cache_policies.py

from mcp.server.fastmcp import FastMCP

import config


def render_policies() -> str:
    rows = [
        ("users", config.USER_CACHE_TTL, config.USER_CACHE_CAPACITY),
        ("matches", config.MATCH_CACHE_TTL, config.MATCH_CACHE_CAPACITY),
        ("stats", config.STATS_CACHE_TTL, config.STATS_CACHE_CAPACITY),
        ("display-names", config.DISPLAY_NAME_TTL, config.DISPLAY_NAME_CAPACITY),
    ]
    lines = ["cache           ttl(s)  capacity"]
    lines += [f"{name:<15} {ttl:>6.0f}  {cap:>8d}" for name, ttl, cap in rows]
    lines += [
        "",
        f"registry sweep every {config.REGISTRY_SWEEP_INTERVAL:.0f}s, "
        f"display-name sweep every {config.DISPLAY_NAME_SWEEP_INTERVAL:.0f}s",
        f"images expire on disk after {config.IMAGE_MAX_AGE_SECONDS / 86400:.1f} days; "
        "eviction trims disk to 80% of its ceiling",
    ]
    return "\n".join(lines) + "\n"


def register_resources(mcp: FastMCP) -> None:
    """
    Register cache policy resources for the MCP server.
    """

    @mcp.resource(
        "cache://policies",
        mime_type="text/plain",
        description="TTL, capacity and sweep settings of every cache"
    )
    def cache_policies() -> str:
        return render_policies()
