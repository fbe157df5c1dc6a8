"""MusicBrainz HTTP client for barcode-based release lookup."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, cast

import httpx

from mediaset.config.settings import MusicBrainzSettings
from mediaset.domain.entities import CandidateResult
from mediaset.domain.ports import IMusicMetadataClient
from mediaset.infrastructure.integrations.provider_errors import (
    ensure_success,
    translate_transport_errors,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "musicbrainz"


class MusicBrainzClient(IMusicMetadataClient):
    """HTTP client for MusicBrainz API operations with rate limiting."""

    API_BASE_URL = "https://musicbrainz.org/ws/2"
    RATE_LIMIT_DELAY = 1.0  # 1 request per second as per MusicBrainz guidelines
    RELEASE_INCLUDES = "artist-credits+labels+recordings+tags"

    # Hey future me, MusicBrainz is STRICT about rate limiting - 1 req/sec, NO EXCEPTIONS!
    # They IP-ban clients that go faster. The lock + _last_request_time keep even concurrent
    # callers compliant.
    def __init__(self, settings: MusicBrainzSettings) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._last_request_time: float = 0.0
        self._rate_limit_lock = asyncio.Lock()

    # MusicBrainz rejects requests without "AppName/Version ( contact )" User-Agent (403).
    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            user_agent = (
                f"{self.settings.app_name}/{self.settings.app_version} "
                f"( {self.settings.contact} )"
            )
            self._client = httpx.AsyncClient(
                base_url=self.API_BASE_URL,
                headers={"User-Agent": user_agent, "Accept": "application/json"},
                timeout=30.0,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # _last_request_time is updated AFTER the response arrives, so slow responses
    # don't shorten the gap to the next request.
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

    async def search_releases_by_barcode(
        self, barcode: str
    ) -> list[CandidateResult] | None:
        """Find releases carrying this UPC/EAN barcode.

        Returns:
            Matching releases in MusicBrainz score order, None on 404
        """
        response = await self._rate_limited_request(
            "GET",
            "/release/",
            params={"query": f"barcode:{barcode}", "fmt": "json"},
        )
        if not ensure_success(SERVICE_NAME, response):
            return None

        with translate_transport_errors(SERVICE_NAME):
            data = response.json()

        releases = [
            CandidateResult(
                id=release["id"],
                name=release.get("title") or "",
                release_date_hint=release.get("date"),
                detail_reference=release["id"],
            )
            for release in data.get("releases") or []
            if release.get("id")
        ]
        logger.debug("MusicBrainz barcode %s matched %d releases", barcode, len(releases))
        return releases

    # "release" is one specific pressing. The inc params pull in artist credits, label
    # info, the track listing (media -> tracks) and community tags; without them you get
    # little more than the title.
    async def get_release(self, release_id: str) -> dict[str, Any] | None:
        response = await self._rate_limited_request(
            "GET",
            f"/release/{release_id}",
            params={"inc": self.RELEASE_INCLUDES, "fmt": "json"},
        )
        if not ensure_success(SERVICE_NAME, response):
            return None

        with translate_transport_errors(SERVICE_NAME):
            return cast(dict[str, Any], response.json())
