"""Domain entities for the media catalog."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar

from mediaset.domain.entities.lookup import (
    BarcodeItem,
    BarcodeLookupResponse,
    BookResponse,
    CandidateResult,
    DiscTrack,
    GameDetails,
    GameResponse,
    LookupResult,
    MovieDetails,
    MovieResponse,
    MusicResponse,
    NormalizedQuery,
    PlatformRef,
)


# Hey future me - MediaType is CLOSED. The definition order below is the processing order
# for the background scheduler (books first, music last) and for batch remainder
# distribution, so don't reorder casually. Values are stored as strings in the DB.
class MediaType(str, Enum):
    """Kind of catalog item."""

    BOOK = "book"
    MOVIE = "movie"
    GAME = "game"
    MUSIC = "music"


class IdentifierType(str, Enum):
    """Kind of code used to look an item up at a provider."""

    ISBN = "isbn"
    LCCN = "lccn"
    OCLC = "oclc"
    OLID = "olid"
    UPC = "upc"
    EAN = "ean"


@dataclass
class ImageMetadata:
    """A cover image that has been downloaded and stored."""

    file_name: str
    file_path: str
    content_type: str
    file_size: int
    original_url: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        """Serialize for the JSON column in the catalog tables."""
        return {
            "file_name": self.file_name,
            "file_path": self.file_path,
            "content_type": self.content_type,
            "file_size": self.file_size,
            "original_url": self.original_url,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageMetadata:
        return cls(
            file_name=data["file_name"],
            file_path=data["file_path"],
            content_type=data["content_type"],
            file_size=int(data["file_size"]),
            original_url=data.get("original_url"),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )


# Yo, this is the ONLY thing the "needs enrichment" query looks at (together with the cover
# image). Once it is set - success OR failure - the entity is never picked up again by the
# scheduler. permanent_failure is informational for humans; the external reset
# (repository.reset_attempt) is what makes an entity eligible again.
@dataclass(frozen=True)
class EnrichmentAttempt:
    """Record of the last cover-art lookup attempt on an entity."""

    attempted_at: datetime
    failure_reason: str | None = None
    permanent_failure: bool = False

    @property
    def succeeded(self) -> bool:
        return self.failure_reason is None


@dataclass(frozen=True)
class EnrichmentOutcome:
    """Result of enriching one entity; handed from orchestrator to scheduler."""

    success: bool
    image_url: str | None = None
    saved_image: ImageMetadata | None = None
    error_message: str | None = None
    permanent_failure: bool = False

    @classmethod
    def ok(cls, image_url: str, saved_image: ImageMetadata) -> EnrichmentOutcome:
        return cls(success=True, image_url=image_url, saved_image=saved_image)

    @classmethod
    def failed(
        cls,
        error_message: str,
        permanent: bool = False,
        image_url: str | None = None,
    ) -> EnrichmentOutcome:
        return cls(
            success=False,
            image_url=image_url,
            error_message=error_message,
            permanent_failure=permanent,
        )

    def to_attempt(self, attempted_at: datetime | None = None) -> EnrichmentAttempt:
        """Turn this outcome into the attempt record persisted on the entity."""
        return EnrichmentAttempt(
            attempted_at=attempted_at or datetime.now(UTC),
            failure_reason=None if self.success else self.error_message,
            permanent_failure=False if self.success else self.permanent_failure,
        )


@dataclass
class CatalogEntity(ABC):
    """Common shape of books, movies, games and music in the catalog.

    Hey future me - the enrichment engine only ever reads id/title/image_url and the lookup
    identifier, and only ever writes cover_image + image_lookup. Everything else on the
    subclasses belongs to the CRUD side of the app.

    Each subclass names its lookup key explicitly via lookup_identifier() and
    lookup_identifier_type(); there's no attribute scanning anywhere.
    """

    media_type: ClassVar[MediaType]

    id: str | None = None
    title: str = ""
    image_url: str | None = None
    cover_image: ImageMetadata | None = None
    image_lookup: EnrichmentAttempt | None = None

    @abstractmethod
    def lookup_identifier(self) -> str:
        """Raw value of the field used as this entity's lookup key."""

    @abstractmethod
    def lookup_identifier_type(self) -> IdentifierType:
        """How lookup_identifier() should be interpreted by the providers."""

    def needs_enrichment(self) -> bool:
        return self.cover_image is None and self.image_lookup is None


def barcode_identifier_type(value: str) -> IdentifierType:
    """13-digit barcodes are EANs, everything else is treated as a UPC."""
    value = value.strip()
    if len(value) == 13 and value.isdigit():
        return IdentifierType.EAN
    return IdentifierType.UPC


@dataclass
class Book(CatalogEntity):
    media_type: ClassVar[MediaType] = MediaType.BOOK

    isbn: str = ""
    authors: list[str] = field(default_factory=list)
    format: str = ""

    def lookup_identifier(self) -> str:
        return self.isbn

    def lookup_identifier_type(self) -> IdentifierType:
        return IdentifierType.ISBN


@dataclass
class Movie(CatalogEntity):
    media_type: ClassVar[MediaType] = MediaType.MOVIE

    barcode: str = ""
    format: str = ""

    def lookup_identifier(self) -> str:
        return self.barcode

    def lookup_identifier_type(self) -> IdentifierType:
        return barcode_identifier_type(self.barcode)


@dataclass
class Game(CatalogEntity):
    media_type: ClassVar[MediaType] = MediaType.GAME

    barcode: str = ""
    platform: str = ""
    format: str = ""

    def lookup_identifier(self) -> str:
        return self.barcode

    def lookup_identifier_type(self) -> IdentifierType:
        return barcode_identifier_type(self.barcode)


@dataclass
class Music(CatalogEntity):
    media_type: ClassVar[MediaType] = MediaType.MUSIC

    barcode: str = ""
    artist: str = ""
    format: str = ""

    def lookup_identifier(self) -> str:
        return self.barcode

    def lookup_identifier_type(self) -> IdentifierType:
        return barcode_identifier_type(self.barcode)


ENTITY_CLASSES: dict[MediaType, type[CatalogEntity]] = {
    MediaType.BOOK: Book,
    MediaType.MOVIE: Movie,
    MediaType.GAME: Game,
    MediaType.MUSIC: Music,
}


__all__ = [
    "ENTITY_CLASSES",
    "BarcodeItem",
    "BarcodeLookupResponse",
    "Book",
    "BookResponse",
    "CandidateResult",
    "CatalogEntity",
    "DiscTrack",
    "EnrichmentAttempt",
    "EnrichmentOutcome",
    "Game",
    "GameDetails",
    "GameResponse",
    "IdentifierType",
    "ImageMetadata",
    "LookupResult",
    "MediaType",
    "Movie",
    "MovieDetails",
    "MovieResponse",
    "Music",
    "MusicResponse",
    "NormalizedQuery",
    "PlatformRef",
    "barcode_identifier_type",
]
