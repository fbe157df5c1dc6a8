"""Catalog repository implementation (the enrichment engine's view of storage)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from sqlalchemy import select, update

from mediaset.domain.entities import (
    Book,
    CatalogEntity,
    EnrichmentAttempt,
    Game,
    ImageMetadata,
    MediaType,
    Movie,
    Music,
)
from mediaset.domain.exceptions import EntityNotFoundException
from mediaset.domain.ports import ICatalogRepository
from mediaset.infrastructure.persistence.models import (
    BookModel,
    CatalogItemMixin,
    GameModel,
    MovieModel,
    MusicModel,
    ensure_utc_aware,
    utc_now,
)

if TYPE_CHECKING:
    from mediaset.infrastructure.persistence.database import Database

logger = logging.getLogger(__name__)

MODEL_FOR_TYPE: dict[MediaType, type[CatalogItemMixin]] = {
    MediaType.BOOK: BookModel,
    MediaType.MOVIE: MovieModel,
    MediaType.GAME: GameModel,
    MediaType.MUSIC: MusicModel,
}


def _attempt_from_model(model: CatalogItemMixin) -> EnrichmentAttempt | None:
    if model.image_lookup_attempted_at is None:
        return None
    return EnrichmentAttempt(
        attempted_at=ensure_utc_aware(model.image_lookup_attempted_at),
        failure_reason=model.image_lookup_failure_reason,
        permanent_failure=model.image_lookup_permanent_failure,
    )


def _to_entity(media_type: MediaType, model: CatalogItemMixin) -> CatalogEntity:
    common = {
        "id": model.id,
        "title": model.title,
        "image_url": model.image_url,
        "cover_image": (
            ImageMetadata.from_dict(model.cover_image) if model.cover_image else None
        ),
        "image_lookup": _attempt_from_model(model),
        "format": model.format,
    }
    if isinstance(model, BookModel):
        return Book(isbn=model.isbn, authors=list(model.authors or []), **common)
    if isinstance(model, MovieModel):
        return Movie(barcode=model.barcode, **common)
    if isinstance(model, GameModel):
        return Game(barcode=model.barcode, platform=model.platform, **common)
    if isinstance(model, MusicModel):
        return Music(barcode=model.barcode, artist=model.artist, **common)
    raise TypeError(f"No entity mapping for {media_type.value} model {type(model)!r}")


def _to_model(entity: CatalogEntity) -> CatalogItemMixin:
    model_class = MODEL_FOR_TYPE[entity.media_type]
    model = model_class()
    if entity.id:
        model.id = entity.id
    model.title = entity.title
    model.image_url = entity.image_url
    model.cover_image = entity.cover_image.to_dict() if entity.cover_image else None
    if entity.image_lookup is not None:
        model.image_lookup_attempted_at = entity.image_lookup.attempted_at
        model.image_lookup_failure_reason = entity.image_lookup.failure_reason
        model.image_lookup_permanent_failure = entity.image_lookup.permanent_failure

    if isinstance(entity, Book):
        model.isbn = entity.isbn
        model.authors = list(entity.authors)
        model.format = entity.format
    elif isinstance(entity, Game):
        model.barcode = entity.barcode
        model.platform = entity.platform
        model.format = entity.format
    elif isinstance(entity, Movie | Music):
        model.barcode = entity.barcode
        model.format = entity.format
        if isinstance(entity, Music):
            model.artist = entity.artist
    return model


# Hey future me - every method opens its OWN session_scope. The scheduler persists one
# entity at a time on purpose: a crash mid-pass keeps everything already written, and the
# "needs enrichment" predicate simply picks up the rest next time.
class CatalogRepository(ICatalogRepository):
    """SQLAlchemy-backed catalog storage."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def add(self, entity: CatalogEntity) -> CatalogEntity:
        model = _to_model(entity)
        async with self._db.session_scope() as session:
            session.add(model)
            await session.flush()
            entity.id = model.id
        return entity

    async def get(self, media_type: MediaType, entity_id: str) -> CatalogEntity | None:
        model_class = MODEL_FOR_TYPE[media_type]
        async with self._db.session_scope() as session:
            model = await session.get(model_class, entity_id)
            return _to_entity(media_type, model) if model else None

    async def find_needing_enrichment(
        self, media_type: MediaType, limit: int
    ) -> list[CatalogEntity]:
        """Never-attempted entities without a cover image, in id order."""
        model_class = MODEL_FOR_TYPE[media_type]
        stmt = (
            select(model_class)
            .where(model_class.cover_image.is_(None))
            .where(model_class.image_lookup_attempted_at.is_(None))
            .order_by(model_class.id)
            .limit(limit)
        )
        async with self._db.session_scope() as session:
            result = await session.execute(stmt)
            return [_to_entity(media_type, m) for m in result.scalars().all()]

    async def update_attempt(
        self,
        media_type: MediaType,
        entity_id: str,
        attempt: EnrichmentAttempt,
        image: ImageMetadata | None = None,
    ) -> None:
        model_class = MODEL_FOR_TYPE[media_type]
        values: dict[str, object] = {
            "image_lookup_attempted_at": attempt.attempted_at,
            "image_lookup_failure_reason": attempt.failure_reason,
            "image_lookup_permanent_failure": attempt.permanent_failure,
            "updated_at": utc_now(),
        }
        if image is not None:
            values["cover_image"] = image.to_dict()

        async with self._db.session_scope() as session:
            result = await session.execute(
                update(model_class).where(model_class.id == entity_id).values(**values)
            )
            if result.rowcount == 0:
                raise EntityNotFoundException(media_type.value, entity_id)

        logger.debug(
            "Recorded image lookup attempt on %s %s (failure=%s)",
            media_type.value,
            entity_id,
            attempt.failure_reason,
        )

    async def reset_attempt(self, media_type: MediaType, entity_id: str) -> None:
        model_class = MODEL_FOR_TYPE[media_type]
        async with self._db.session_scope() as session:
            result = await session.execute(
                update(model_class)
                .where(model_class.id == entity_id)
                .values(
                    image_lookup_attempted_at=None,
                    image_lookup_failure_reason=None,
                    image_lookup_permanent_failure=False,
                    updated_at=utc_now(),
                )
            )
            if result.rowcount == 0:
                raise EntityNotFoundException(media_type.value, entity_id)
        logger.info("Reset image lookup attempt on %s %s", media_type.value, entity_id)
