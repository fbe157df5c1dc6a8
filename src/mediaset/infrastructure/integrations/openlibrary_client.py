"""OpenLibrary client using the Read API (volumes/brief)."""

from __future__ import annotations

import logging
import unicodedata
from typing import Any

import httpx

from mediaset.config.settings import OpenLibrarySettings
from mediaset.domain.entities import BookResponse, IdentifierType
from mediaset.domain.exceptions import ValidationException
from mediaset.domain.ports import IBookMetadataClient
from mediaset.infrastructure.integrations.provider_errors import (
    ensure_success,
    translate_transport_errors,
)
from mediaset.infrastructure.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

SERVICE_NAME = "openlibrary"
COVER_URL_TEMPLATE = "https://covers.openlibrary.org/b/id/{cover_id}-L.jpg"

READ_API_IDENTIFIERS = frozenset(
    {
        IdentifierType.ISBN,
        IdentifierType.LCCN,
        IdentifierType.OCLC,
        IdentifierType.OLID,
    }
)


class OpenLibraryClient(IBookMetadataClient):
    """HTTP client for OpenLibrary book metadata."""

    def __init__(
        self, settings: OpenLibrarySettings, rate_limiter: RateLimiter | None = None
    ) -> None:
        self.settings = settings
        self._client: httpx.AsyncClient | None = None
        self._rate_limiter = rate_limiter or RateLimiter.for_openlibrary()

    # OpenLibrary asks API users to identify themselves with a contact address
    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.settings.base_url,
                headers={
                    "Accept": "application/json",
                    "User-Agent": f"MediaSet/0.1 ({self.settings.contact_email})",
                },
                timeout=self.settings.timeout_seconds,
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _rate_limited_request(self, url: str) -> httpx.Response:
        client = await self._get_client()
        with translate_transport_errors(SERVICE_NAME):
            async with self._rate_limiter:
                return await client.get(url)

    async def get_book(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> BookResponse | None:
        """Look a book up by ISBN/LCCN/OCLC/OLID.

        Raises:
            ValidationException: identifier type has no Read API endpoint
        """
        if identifier_type not in READ_API_IDENTIFIERS:
            raise ValidationException(
                f"OpenLibrary cannot look up books by {identifier_type.value}"
            )

        url = f"api/volumes/brief/{identifier_type.value}/{identifier_value}.json"
        response = await self._rate_limited_request(url)
        if not ensure_success(SERVICE_NAME, response):
            return None

        with translate_transport_errors(SERVICE_NAME):
            payload = response.json()

        book = map_read_api_response(payload)
        logger.info(
            "Readable book lookup by %s:%s %s",
            identifier_type.value,
            identifier_value,
            "found" if book else "returned no record",
        )
        return book


def _subject_key(name: str) -> str:
    """Case/accent/punctuation-insensitive key so near-duplicate subjects collapse."""
    decomposed = unicodedata.normalize("NFKD", name).lower()
    return "".join(ch for ch in decomposed if ch.isalnum())


def _dedupe_subjects(subjects: list[dict[str, Any]]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for subject in subjects:
        name = (subject.get("name") or "").strip()
        key = _subject_key(name)
        if not key or key in seen:
            continue
        seen.add(key)
        result.append(" ".join(name.split()))
    return result


# Hey future me - the Read API wraps everything in "records" keyed by the OL edition path,
# e.g. {"records": {"/books/OL123M": {"data": {...}, "details": {"details": {...}}}}}.
# "data" has the nice normalized fields, "details.details" has the raw edition record
# (physical_format, covers). An empty "records" dict means "not found".
def map_read_api_response(payload: dict[str, Any] | list[Any]) -> BookResponse | None:
    # Unknown identifiers come back as an empty JSON list
    if not isinstance(payload, dict) or not payload.get("records"):
        return None

    record = next(iter(payload["records"].values()))
    data = record.get("data")
    if not data:
        return None

    publish_dates = record.get("publishDates") or []
    details = (record.get("details") or {}).get("details") or {}

    image_url = None
    covers = details.get("covers") or []
    if covers and isinstance(covers[0], int) and covers[0] > 0:
        image_url = COVER_URL_TEMPLATE.format(cover_id=covers[0])
    else:
        cover = data.get("cover") or {}
        image_url = cover.get("large") or cover.get("medium") or cover.get("small")

    physical_format = details.get("physical_format") or ""

    return BookResponse(
        title=data.get("title") or "",
        subtitle=data.get("subtitle") or "",
        authors=[a["name"] for a in data.get("authors") or [] if a.get("name")],
        number_of_pages=data.get("number_of_pages"),
        publishers=[p["name"] for p in data.get("publishers") or [] if p.get("name")],
        publication_date=publish_dates[0] if publish_dates else data.get("publish_date") or "",
        subjects=_dedupe_subjects(data.get("subjects") or []),
        format=physical_format.title(),
        image_url=image_url,
    )
