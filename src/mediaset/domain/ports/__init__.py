"""Domain ports (interfaces) for dependency inversion."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from mediaset.domain.entities import (
    BarcodeLookupResponse,
    BookResponse,
    CandidateResult,
    CatalogEntity,
    EnrichmentAttempt,
    GameDetails,
    IdentifierType,
    ImageMetadata,
    LookupResult,
    MediaType,
    MovieDetails,
)
from mediaset.domain.ports.image_service import IImageService, IImageStorageProvider


# Hey future me - provider ports follow ONE rule: "no data" is None (or an empty list),
# "provider broke" is an exception (ExternalServiceError / RateLimitExceededError).
# Strategies rely on that split to tell a permanent miss from something worth retrying.
class IBarcodeLookupClient(ABC):
    """Resolves a UPC/EAN barcode into product listings."""

    @abstractmethod
    async def get_by_code(self, code: str) -> BarcodeLookupResponse | None:
        pass


class IBookMetadataClient(ABC):
    """Book metadata by ISBN/LCCN/OCLC/OLID."""

    @abstractmethod
    async def get_book(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> BookResponse | None:
        pass


class IMovieMetadataClient(ABC):
    """Movie search + details."""

    @abstractmethod
    async def search_movies(self, title: str) -> list[CandidateResult] | None:
        pass

    @abstractmethod
    async def get_movie_details(self, detail_reference: str) -> MovieDetails | None:
        pass


class IGameMetadataClient(ABC):
    """Game search + details."""

    @abstractmethod
    async def search_games(self, title: str) -> list[CandidateResult] | None:
        pass

    @abstractmethod
    async def get_game_details(self, detail_reference: str) -> GameDetails | None:
        pass


class IMusicMetadataClient(ABC):
    """Music release lookup by barcode."""

    @abstractmethod
    async def search_releases_by_barcode(
        self, barcode: str
    ) -> list[CandidateResult] | None:
        pass

    @abstractmethod
    async def get_release(self, release_id: str) -> dict[str, Any] | None:
        """Full release payload (artist credits, labels, media, tags)."""
        pass


class ICoverArtClient(ABC):
    """Resolves cover art URLs for music releases."""

    @abstractmethod
    async def get_front_cover_url(self, release_id: str) -> str | None:
        pass


class ILookupStrategy(ABC):
    """Turns one identifier into an enriched metadata record for one media type."""

    media_type: MediaType
    supported_identifier_types: frozenset[IdentifierType]

    def can_handle(
        self, media_type: MediaType, identifier_type: IdentifierType
    ) -> bool:
        return (
            media_type == self.media_type
            and identifier_type in self.supported_identifier_types
        )

    @abstractmethod
    async def lookup(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> LookupResult | None:
        """Return the matched record, or None when the providers have no data."""
        pass


# Yo, this is the storage seam the enrichment engine needs - nothing more. The CRUD side of
# the app can have a much bigger repository; we only depend on these operations.
class ICatalogRepository(ABC):
    """Catalog storage as seen by the enrichment engine."""

    @abstractmethod
    async def add(self, entity: CatalogEntity) -> CatalogEntity:
        pass

    @abstractmethod
    async def get(self, media_type: MediaType, entity_id: str) -> CatalogEntity | None:
        pass

    @abstractmethod
    async def find_needing_enrichment(
        self, media_type: MediaType, limit: int
    ) -> list[CatalogEntity]:
        """Entities with neither a cover image nor an attempt record."""
        pass

    @abstractmethod
    async def update_attempt(
        self,
        media_type: MediaType,
        entity_id: str,
        attempt: EnrichmentAttempt,
        image: ImageMetadata | None = None,
    ) -> None:
        pass

    @abstractmethod
    async def reset_attempt(self, media_type: MediaType, entity_id: str) -> None:
        """Clear the attempt record so the scheduler picks the entity up again."""
        pass


__all__ = [
    "IBarcodeLookupClient",
    "IBookMetadataClient",
    "ICatalogRepository",
    "ICoverArtClient",
    "IGameMetadataClient",
    "IImageService",
    "IImageStorageProvider",
    "ILookupStrategy",
    "IMovieMetadataClient",
    "IMusicMetadataClient",
]
