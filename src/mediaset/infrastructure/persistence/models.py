"""SQLAlchemy ORM models for the media catalog."""

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! Datetimes come back naive, so
# attach UTC before comparing with datetime.now(UTC) or you get
# "can't compare offset-naive and offset-aware datetimes".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Yo, every catalog table carries the same enrichment columns. cover_image is the stored
# ImageMetadata as JSON (NULL = no cover yet); the three image_lookup_* columns are the
# EnrichmentAttempt (attempted_at NULL = never attempted). The "needs enrichment" query is
# exactly "cover_image IS NULL AND image_lookup_attempted_at IS NULL". attempted_at is indexed
# for it.
class CatalogItemMixin:
    """Columns shared by books, movies, games and music."""

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    format: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True), nullable=True
    )
    image_lookup_attempted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    image_lookup_failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_lookup_permanent_failure: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )


class BookModel(CatalogItemMixin, Base):
    __tablename__ = "books"

    isbn: Mapped[str] = mapped_column(String(20), nullable=False, default="", index=True)
    authors: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)


class MovieModel(CatalogItemMixin, Base):
    __tablename__ = "movies"

    barcode: Mapped[str] = mapped_column(String(20), nullable=False, default="", index=True)


class GameModel(CatalogItemMixin, Base):
    __tablename__ = "games"

    barcode: Mapped[str] = mapped_column(String(20), nullable=False, default="", index=True)
    platform: Mapped[str] = mapped_column(String(100), nullable=False, default="")


class MusicModel(CatalogItemMixin, Base):
    __tablename__ = "music"

    barcode: Mapped[str] = mapped_column(String(20), nullable=False, default="", index=True)
    artist: Mapped[str] = mapped_column(String(255), nullable=False, default="")
