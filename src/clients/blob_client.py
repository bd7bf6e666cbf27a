from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

import httpx

from clients.http_errors import raise_for_status, translate_transport_error
from core.errors import ValidationError
from core.retry import RetryPolicy


def validate_blob_url(url: str) -> str:
    raw = (url or "").strip()
    parts = urlsplit(raw)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValidationError(f"Invalid image URL: {url!r}")
    return raw


class BlobClient:
    """Downloads raw image bytes; transient failures are retried."""

    def __init__(
        self,
        *,
        timeout: float,
        verify: bool = True,
        retry: Optional[RetryPolicy] = None,
    ) -> None:
        self._timeout = timeout
        self._verify = verify
        self._retry = retry or RetryPolicy.network()

    async def fetch(self, url: str) -> bytes:
        target = validate_blob_url(url)
        return await self._retry.run(lambda: self._fetch_once(target))

    async def _fetch_once(self, url: str) -> bytes:
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                verify=self._verify,
                follow_redirects=True,
            ) as c:
                r = await c.get(url, headers={"Accept": "image/*"})
        except httpx.HTTPError as e:
            raise translate_transport_error(e, context=f"GET {url}") from e

        raise_for_status(r, context=f"GET {url}")
        return r.content
