"""Server bootstrap for the profile cache MCP service.

Creates the FastMCP instance, builds the cache services once, wires them
into the tools and resources, and starts the MCP server (stdio transport).
Background sweeps and the memory monitor run for the server's lifespan.
"""

import logging
import sys
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from caches.cache_factory import build_services
from config import LOG_LEVEL

from tools.cache_admin import register as register_cache_admin
from tools.display_names import register as register_display_names
from tools.images import register as register_images
from tools.profiles import register as register_profiles

from resources.cache_policies import register_resources

logger = logging.getLogger(__name__)

services = build_services()


@asynccontextmanager
async def lifespan(_server):
    await services.start()
    try:
        yield
    finally:
        await services.stop()


mcp = FastMCP("profile-cache-mcp", lifespan=lifespan)


def register_tools() -> None:
    register_cache_admin(mcp, services=services)
    register_display_names(mcp, display_names=services.display_names)
    register_profiles(mcp, profiles=services.profiles)
    register_images(mcp, images=services.images)


def register_all() -> None:
    register_tools()
    register_resources(mcp)


register_all()


def main() -> None:
    # stdout belongs to the stdio transport
    logging.basicConfig(
        level=LOG_LEVEL,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
