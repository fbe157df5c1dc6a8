"""Game lookup: barcode -> product listing -> GiantBomb search + best match -> details."""

from __future__ import annotations

import html
import logging
import re

from mediaset.domain.entities import (
    GameDetails,
    GameResponse,
    IdentifierType,
    MediaType,
)
from mediaset.domain.ports import (
    IBarcodeLookupClient,
    IGameMetadataClient,
    ILookupStrategy,
)
from mediaset.domain.value_objects import (
    derive_format_from_platforms,
    normalize_game_query,
    select_best_match,
)
from mediaset.infrastructure.observability.tracing import get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

_HTML_TAG_RE = re.compile(r"<[^>]+>")


def pick_rating(ratings: tuple[str, ...]) -> str:
    """ESRB entry if there is one, else the first rating, else ""."""
    for rating in ratings:
        if "esrb" in rating.lower():
            return rating
    return ratings[0] if ratings else ""


def plain_text(value: str) -> str:
    # GiantBomb descriptions are HTML fragments
    text = html.unescape(_HTML_TAG_RE.sub(" ", value or ""))
    return re.sub(r"\s+", " ", text).strip()


def map_game_response(
    details: GameDetails, game_format: str, platform: str, edition: str | None
) -> GameResponse:
    title = details.name
    if edition:
        title = f"{title} ({edition})"

    if not platform and details.platforms:
        platform = details.platforms[0].name

    return GameResponse(
        title=title,
        platform=platform,
        genres=list(details.genres),
        developers=list(details.developers),
        publishers=list(details.publishers),
        release_date=details.release_date,
        rating=pick_rating(details.ratings),
        description=plain_text(details.description) or details.deck,
        format=game_format,
        image_url=details.image_url,
    )


class GameLookupStrategy(ILookupStrategy):
    """Resolves games by UPC/EAN barcode."""

    media_type = MediaType.GAME
    supported_identifier_types = frozenset({IdentifierType.UPC, IdentifierType.EAN})

    def __init__(
        self,
        barcode_client: IBarcodeLookupClient,
        game_client: IGameMetadataClient,
    ) -> None:
        self._barcodes = barcode_client
        self._games = game_client

    async def lookup(
        self, identifier_type: IdentifierType, identifier_value: str
    ) -> GameResponse | None:
        with _tracer.start_as_current_span("lookup.game") as span:
            span.set_attribute("identifier.type", identifier_type.value)
            span.set_attribute("identifier.value", identifier_value)

            response = await self._barcodes.get_by_code(identifier_value)
            item = response.first if response else None
            if item is None or not item.title.strip():
                logger.info("No product title for game barcode %s", identifier_value)
                return None

            query = normalize_game_query(item.title, item.category, item.brand, item.model)
            logger.info(
                "Game barcode %s: '%s' -> '%s' (edition=%r, format=%r, platform=%r)",
                identifier_value,
                item.title,
                query.cleaned_title,
                query.extracted_edition,
                query.extracted_format,
                query.extracted_platform,
            )
            span.set_attribute("query.title", query.cleaned_title)

            hits = await self._games.search_games(query.cleaned_title)
            if not hits:
                logger.info("GiantBomb has no match for '%s'", query.cleaned_title)
                return None

            # Unlike TMDB, GiantBomb search mixes in DLC and re-releases, so score the hits
            best = select_best_match(hits, query.cleaned_title)
            if best is None:
                return None
            logger.debug("Best GiantBomb match for '%s': %s", query.cleaned_title, best.name)

            details = await self._games.get_game_details(best.detail_reference)
            if details is None:
                logger.warning("GiantBomb details missing for %s", best.detail_reference)
                return None

            platform = query.extracted_platform or ""
            game_format = query.extracted_format
            if not game_format:
                game_format = derive_format_from_platforms(details.platforms, platform)

            return map_game_response(
                details, game_format, platform, query.extracted_edition
            )
