"""GiantBomb API client for game search and details."""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

import httpx

from mediaset.config.settings import GiantBombSettings
from mediaset.domain.entities import CandidateResult, GameDetails, PlatformRef
from mediaset.domain.exceptions import ExternalServiceError, RateLimitExceededError
from mediaset.domain.ports import IGameMetadataClient
from mediaset.infrastructure.integrations.provider_errors import (
    ensure_success,
    retry_after_seconds,
    translate_transport_errors,
)
from mediaset.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SERVICE_NAME = "giantbomb"

# GiantBomb puts its own status in the body; HTTP is 200 even for most errors.
STATUS_OK = 1
STATUS_NOT_FOUND = 101
STATUS_RATE_LIMITED = 107

DETAIL_FIELDS = ",".join(
    (
        "name",
        "genres",
        "developers",
        "publishers",
        "platforms",
        "original_release_date",
        "description",
        "deck",
        "original_game_rating",
        "image",
    )
)


def normalize_detail_path(detail_reference: str) -> str:
    """Turn a full api_detail_url, "game/<guid>" or bare guid into "game/<guid>/".

    The base URL already ends in "/api/", so an "api/" prefix from a full URL is dropped.
    """
    reference = detail_reference.strip()
    parsed = urlparse(reference)
    if parsed.scheme in ("http", "https") and parsed.netloc:
        path = parsed.path.lstrip("/")
        if path.lower().startswith("api/"):
            path = path[4:]
    elif reference.lower().startswith("game/"):
        path = reference
    else:
        path = f"game/{reference}"
    return path if path.endswith("/") else f"{path}/"


class GiantBombClient(IGameMetadataClient):
    """HTTP client for the GiantBomb API."""

    def __init__(
        self, settings: GiantBombSettings, rate_limiter: RateLimiter | None = None
    ) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._rate_limiter = rate_limiter or RateLimiter.for_giantbomb()

    # GiantBomb rejects requests without a descriptive User-Agent
    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={
                    "Accept": "application/json",
                    "User-Agent": "MediaSet/0.1 (GiantBomb)",
                },
                timeout=self.settings.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limited_request(
        self, url: str, params: dict[str, Any]
    ) -> httpx.Response:
        client = await self._get_client()
        query = {"api_key": self.settings.api_key, "format": "json", **params}
        with translate_transport_errors(SERVICE_NAME):
            async with self._rate_limiter:
                response = await client.get(url, params=query)
        # 420 is GiantBomb's "slow down" status
        if response.status_code == 420:
            raise RateLimitExceededError(SERVICE_NAME, retry_after_seconds(response))
        return response

    def _parse_body(self, response: httpx.Response) -> dict[str, Any] | None:
        if not ensure_success(SERVICE_NAME, response):
            return None
        with translate_transport_errors(SERVICE_NAME):
            body: dict[str, Any] = response.json()

        status = body.get("status_code")
        if status == STATUS_OK:
            return body
        if status == STATUS_NOT_FOUND:
            return None
        if status == STATUS_RATE_LIMITED:
            raise RateLimitExceededError(SERVICE_NAME)
        raise ExternalServiceError(
            SERVICE_NAME, f"API error {status}: {body.get('error', 'unknown error')}"
        )

    async def search_games(self, title: str) -> list[CandidateResult] | None:
        logger.info("Searching GiantBomb for game: %s", title)
        response = await self._rate_limited_request(
            "search/", {"resources": "game", "query": title}
        )
        body = self._parse_body(response)
        if body is None:
            return None

        results = [
            CandidateResult(
                id=str(hit.get("guid") or hit.get("id")),
                name=hit.get("name") or "",
                release_date_hint=hit.get("original_release_date"),
                detail_reference=hit.get("api_detail_url") or str(hit.get("guid") or ""),
            )
            for hit in body.get("results") or []
        ]
        logger.info("GiantBomb search found %d results for: %s", len(results), title)
        return results

    async def get_game_details(self, detail_reference: str) -> GameDetails | None:
        path = normalize_detail_path(detail_reference)
        logger.info("Getting GiantBomb game details from: %s", path)
        response = await self._rate_limited_request(path, {"field_list": DETAIL_FIELDS})
        body = self._parse_body(response)
        if body is None or not body.get("results"):
            return None
        return map_game_details(body["results"])


def _names(items: list[dict[str, Any]] | None) -> tuple[str, ...]:
    return tuple(item["name"] for item in items or [] if item.get("name"))


def map_game_details(data: dict[str, Any]) -> GameDetails:
    image = data.get("image") or {}
    image_url = image.get("super_url") or image.get("medium_url") or image.get("small_url")
    return GameDetails(
        name=data.get("name") or "",
        genres=_names(data.get("genres")),
        developers=_names(data.get("developers")),
        publishers=_names(data.get("publishers")),
        platforms=tuple(
            PlatformRef(name=p["name"], abbreviation=p.get("abbreviation"))
            for p in data.get("platforms") or []
            if p.get("name")
        ),
        release_date=data.get("original_release_date") or "",
        description=data.get("description") or "",
        deck=data.get("deck") or "",
        ratings=_names(data.get("original_game_rating")),
        image_url=image_url,
    )
