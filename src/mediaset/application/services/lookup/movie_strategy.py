"""Movie lookup: barcode -> product title -> TMDB search -> TMDB details."""

from __future__ import annotations

import logging

from mediaset.domain.entities import (
    IdentifierType,
    MediaType,
    MovieDetails,
    MovieResponse,
)
from mediaset.domain.ports import (
    IBarcodeLookupClient,
    ILookupStrategy,
    IMovieMetadataClient,
)
from mediaset.domain.value_objects import normalize_movie_query
from mediaset.infrastructure.observability.tracing import get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)


def format_vote(vote_average: float | None) -> str:
    """TMDB vote as "7.9/10"; unrated movies (0 or missing) get an empty rating."""
    if vote_average is None or vote_average <= 0:
        return ""
    return f"{vote_average:.1f}/10"


def map_movie_response(details: MovieDetails, movie_format: str) -> MovieResponse:
    return MovieResponse(
        title=details.title,
        genres=list(details.genres),
        studios=list(details.studios),
        release_date=details.release_date,
        rating=format_vote(details.vote_average),
        runtime=details.runtime,
        plot=details.overview,
        format=movie_format,
        image_url=details.poster_url,
    )


class MovieLookupStrategy(ILookupStrategy):
    """Resolves movies by UPC/EAN barcode."""

    media_type = MediaType.MOVIE
    supported_identifier_types = frozenset({IdentifierType.UPC, IdentifierType.EAN})

    def __init__(
        self,
        barcode_client: IBarcodeLookupClient,
        movie_client: IMovieMetadataClient,
    ) -> None:
        self._barcodes = barcode_client
        self._movies = movie_client

    async def lookup(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> MovieResponse | None:
        with _tracer.start_as_current_span("lookup.movie") as span:
            span.set_attribute("identifier.type", identifier_type.value)
            span.set_attribute("identifier.value", identifier_value)

            response = await self._barcodes.get_by_code(identifier_value)
            item = response.first if response else None
            if item is None or not item.title.strip():
                logger.info("No product title for movie barcode %s", identifier_value)
                return None

            # Format comes from the RAW listing title; cleaning throws the markers away
            query = normalize_movie_query(item.title)
            span.set_attribute("query.title", query.cleaned_title)

            hits = await self._movies.search_movies(query.cleaned_title)
            if not hits:
                logger.info("TMDB has no match for '%s'", query.cleaned_title)
                return None

            # TMDB ranks by relevance already; the first hit is the pick.
            details = await self._movies.get_movie_details(hits[0].detail_reference)
            if details is None:
                logger.warning("TMDB details missing for movie id %s", hits[0].id)
                return None

            return map_movie_response(details, query.extracted_format)
