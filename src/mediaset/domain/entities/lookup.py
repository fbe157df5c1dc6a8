"""Value records exchanged between providers, strategies and the orchestrator.

None of these are persisted. Provider clients map their JSON into the *Details /
BarcodeLookupResponse / CandidateResult records, strategies turn them into the
per-media *Response records.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BarcodeItem:
    """One product hit from the barcode lookup provider."""

    title: str = ""
    category: str | None = None
    brand: str | None = None
    model: str | None = None
    isbn: str | None = None
    ean: str | None = None
    upc: str | None = None
    images: tuple[str, ...] = ()


@dataclass(frozen=True)
class BarcodeLookupResponse:
    items: tuple[BarcodeItem, ...] = ()

    @property
    def first(self) -> BarcodeItem | None:
        return self.items[0] if self.items else None


@dataclass(frozen=True)
class CandidateResult:
    """A provider search hit, only used as match-scorer input."""

    id: str
    name: str
    release_date_hint: str | None = None
    detail_reference: str = ""


@dataclass(frozen=True)
class NormalizedQuery:
    """Searchable title plus the tokens stripped out of the raw title."""

    cleaned_title: str
    extracted_format: str = ""
    extracted_platform: str | None = None
    extracted_edition: str | None = None


@dataclass(frozen=True)
class PlatformRef:
    name: str
    abbreviation: str | None = None


@dataclass(frozen=True)
class MovieDetails:
    title: str
    genres: tuple[str, ...] = ()
    studios: tuple[str, ...] = ()
    release_date: str = ""
    overview: str = ""
    runtime: int | None = None
    vote_average: float | None = None
    poster_url: str | None = None


@dataclass(frozen=True)
class GameDetails:
    name: str
    genres: tuple[str, ...] = ()
    developers: tuple[str, ...] = ()
    publishers: tuple[str, ...] = ()
    platforms: tuple[PlatformRef, ...] = ()
    release_date: str = ""
    description: str = ""
    deck: str = ""
    ratings: tuple[str, ...] = ()
    image_url: str | None = None


@dataclass(frozen=True)
class BookResponse:
    title: str
    subtitle: str = ""
    authors: list[str] = field(default_factory=list)
    number_of_pages: int | None = None
    publishers: list[str] = field(default_factory=list)
    publication_date: str = ""
    subjects: list[str] = field(default_factory=list)
    format: str = ""
    image_url: str | None = None


@dataclass(frozen=True)
class MovieResponse:
    title: str
    genres: list[str] = field(default_factory=list)
    studios: list[str] = field(default_factory=list)
    release_date: str = ""
    rating: str = ""
    runtime: int | None = None
    plot: str = ""
    format: str = ""
    image_url: str | None = None


@dataclass(frozen=True)
class GameResponse:
    title: str
    platform: str = ""
    genres: list[str] = field(default_factory=list)
    developers: list[str] = field(default_factory=list)
    publishers: list[str] = field(default_factory=list)
    release_date: str = ""
    rating: str = ""
    description: str = ""
    format: str = ""
    image_url: str | None = None


@dataclass(frozen=True)
class DiscTrack:
    track_number: int
    title: str
    duration: str = ""


@dataclass(frozen=True)
class MusicResponse:
    title: str
    artist: str = ""
    release_date: str = ""
    genres: list[str] = field(default_factory=list)
    duration: int | None = None
    label: str = ""
    tracks: int | None = None
    discs: int | None = None
    disc_list: list[DiscTrack] = field(default_factory=list)
    format: str = ""
    image_url: str | None = None


LookupResult = BookResponse | MovieResponse | GameResponse | MusicResponse
