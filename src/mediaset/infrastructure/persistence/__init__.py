"""Persistence layer: ORM models, session management and the catalog repository."""

from mediaset.infrastructure.persistence.database import Database
from mediaset.infrastructure.persistence.models import (
    Base,
    BookModel,
    GameModel,
    MovieModel,
    MusicModel,
)
from mediaset.infrastructure.persistence.repositories import CatalogRepository

__all__ = [
    "Base",
    "BookModel",
    "CatalogRepository",
    "Database",
    "GameModel",
    "MovieModel",
    "MusicModel",
]
