"""The Movie Database (TMDB) client for movie search and details."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mediaset.config.settings import TmdbSettings
from mediaset.domain.entities import CandidateResult, MovieDetails
from mediaset.domain.ports import IMovieMetadataClient
from mediaset.infrastructure.integrations.provider_errors import (
    ensure_success,
    retry_after_seconds,
    translate_transport_errors,
)
from mediaset.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SERVICE_NAME = "tmdb"


class TmdbClient(IMovieMetadataClient):
    """HTTP client for TMDB v3 using a read-access bearer token."""

    def __init__(
        self, settings: TmdbSettings, rate_limiter: RateLimiter | None = None
    ) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._rate_limiter = rate_limiter or RateLimiter.for_tmdb()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={
                    "Authorization": f"Bearer {self.settings.bearer_token}",
                    "Accept": "application/json",
                },
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # Hey future me - one polite retry after a 429, then give up with
    # RateLimitExceededError (ensure_success raises it on the second 429).
    async def _rate_limited_request(
        self, url: str, params: dict[str, Any] | None = None
    ) -> httpx.Response:
        client = await self._get_client()
        with translate_transport_errors(SERVICE_NAME):
            async with self._rate_limiter:
                response = await client.get(url, params=params)
            if response.status_code == 429:
                await self._rate_limiter.handle_rate_limit_response(
                    retry_after_seconds(response)
                )
                async with self._rate_limiter:
                    response = await client.get(url, params=params)
        return response

    async def search_movies(self, title: str) -> list[CandidateResult] | None:
        """Search TMDB by title; hits come back in TMDB relevance order."""
        response = await self._rate_limited_request(
            "search/movie", params={"query": title}
        )
        if not ensure_success(SERVICE_NAME, response):
            return None

        with translate_transport_errors(SERVICE_NAME):
            data = response.json()

        results = [
            CandidateResult(
                id=str(hit["id"]),
                name=hit.get("title") or hit.get("original_title") or "",
                release_date_hint=hit.get("release_date") or None,
                detail_reference=str(hit["id"]),
            )
            for hit in data.get("results") or []
            if hit.get("id") is not None
        ]
        logger.debug("TMDB search '%s' returned %d results", title, len(results))
        return results

    async def get_movie_details(self, detail_reference: str) -> MovieDetails | None:
        """Fetch full movie details by TMDB id."""
        response = await self._rate_limited_request(f"movie/{detail_reference}")
        if not ensure_success(SERVICE_NAME, response):
            return None

        with translate_transport_errors(SERVICE_NAME):
            data = response.json()

        poster_path = data.get("poster_path")
        return MovieDetails(
            title=data.get("title") or "",
            genres=tuple(g["name"] for g in data.get("genres") or [] if g.get("name")),
            studios=tuple(
                c["name"]
                for c in data.get("production_companies") or []
                if c.get("name")
            ),
            release_date=data.get("release_date") or "",
            overview=data.get("overview") or "",
            runtime=data.get("runtime"),
            vote_average=data.get("vote_average"),
            poster_url=(
                f"{self.settings.image_base_url}{poster_path}" if poster_path else None
            ),
        )
