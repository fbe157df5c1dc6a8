"""CoverArtArchive client: front cover URLs for MusicBrainz releases.

Hey future me - CAA is the artwork sibling of MusicBrainz, keyed by the same release MBID.
GET /release/{mbid}/front answers with a redirect to the real image on archive.org, so a
HEAD request without following redirects gives us the image URL without downloading it.

GOTCHA: lots of releases (older/indie pressings) have no artwork at all -> 404 -> None.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from mediaset.domain.ports import ICoverArtClient
from mediaset.infrastructure.integrations.provider_errors import (
    ensure_success,
    translate_transport_errors,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "coverartarchive"

REDIRECT_STATUSES = (301, 302, 303, 307, 308)


class CoverArtArchiveClient(ICoverArtClient):
    """HTTP client for CoverArtArchive."""

    API_BASE_URL = "https://coverartarchive.org"
    RATE_LIMIT_DELAY = 0.5

    def __init__(self) -> None:
        self._client: httpx.AsyncClient | None = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE_URL,
                headers={"User-Agent": "MediaSet/0.1 (cover-art enrichment)"},
                timeout=15.0,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limited_request(
        self, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        async with self._rate_limit_lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self._last_request_time
            if time_since_last < self.RATE_LIMIT_DELAY:
                await asyncio.sleep(self.RATE_LIMIT_DELAY - time_since_last)

            client = await self._get_client()
            with translate_transport_errors(SERVICE_NAME):
                response = await client.request(method, url, **kwargs)

            self._last_request_time = loop.time()
            return response

    async def get_front_cover_url(self, release_id: str) -> str | None:
        """Direct URL of the release's front cover, or None if CAA has none."""
        response = await self._rate_limited_request(
            "HEAD", f"/release/{release_id}/front", follow_redirects=False
        )

        if response.status_code in REDIRECT_STATUSES:
            return response.headers.get("Location")
        if not ensure_success(SERVICE_NAME, response):
            logger.debug("No front cover in CAA for release %s", release_id)
            return None
        return None
