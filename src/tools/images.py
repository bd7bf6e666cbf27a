"""MCP tools over the image cache.

Registers 'load_image', which returns the cached (or freshly fetched) image
as an ImageContent payload, and 'prefetch_images' for scroll-ahead warming.
"""

from __future__ import annotations

import base64
from typing import Any, Dict, List

from mcp.server.fastmcp import FastMCP
from mcp.types import ImageContent

from caches.image_cache import ImageCache
from clients.blob_client import validate_blob_url
from core.errors import ValidationError
from core.scheduling import FetchPriority


def _priority(value: str) -> FetchPriority:
    try:
        return FetchPriority.parse(value)
    except (KeyError, ValueError) as e:
        names = ", ".join(p.name.lower() for p in FetchPriority)
        raise ValidationError(f"Unknown priority {value!r}; expected one of {names}") from e


def register(mcp: FastMCP, *, images: ImageCache) -> None:
    @mcp.tool(name="load_image")
    async def load_image(url: str, priority: str = "normal") -> ImageContent:
        """Load an image by URL through the memory/disk cache.

        Params:
          - url: http(s) image URL (required).
          - priority: "immediate", "high", "normal" or "low".

        Returns:
          ImageContent with base64-encoded image data.

        Raises:
          ValidationError for a bad URL or priority; the underlying fetch
          error (retryable or not) when the image cannot be loaded.
        """
        target = validate_blob_url(url)
        image = await images.load(target, _priority(priority), raise_errors=True)
        if image is None:
            raise ValidationError(f"Invalid image URL: {url!r}")

        return ImageContent(
            type="image",
            mimeType=image.mime_type,
            data=base64.b64encode(image.data).decode("ascii"),
        )

    @mcp.tool(name="prefetch_images")
    async def prefetch_images(urls: List[str], priority: str = "low") -> Dict[str, Any]:
        """Start background loads for images not yet cached or in flight."""
        targets = [validate_blob_url(u) for u in (urls or [])]
        scheduled = images.prefetch(targets, _priority(priority))
        return {"requested": len(targets), "scheduled": scheduled}
