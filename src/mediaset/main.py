"""Composition root: wires settings -> clients -> strategies -> worker and runs it.

Run with `python -m mediaset` or the `mediaset-enricher` console script.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.engine import make_url

from mediaset.application.services.image_lookup_service import ImageLookupService
from mediaset.application.services.images.image_service import ImageService
from mediaset.application.services.lookup import (
    BookLookupStrategy,
    GameLookupStrategy,
    LookupStrategyRegistry,
    MovieLookupStrategy,
    MusicLookupStrategy,
)
from mediaset.application.workers.background_image_lookup_worker import (
    BackgroundImageLookupWorker,
)
from mediaset.config import Settings, get_settings
from mediaset.domain.exceptions import ConfigurationError
from mediaset.infrastructure.integrations import (
    CoverArtArchiveClient,
    GiantBombClient,
    HttpClientPool,
    MusicBrainzClient,
    OpenLibraryClient,
    TmdbClient,
    UpcItemDbClient,
)
from mediaset.infrastructure.observability import configure_logging, configure_tracing
from mediaset.infrastructure.persistence import CatalogRepository, Database
from mediaset.infrastructure.storage import LocalFileStorageProvider

logger = logging.getLogger(__name__)


@dataclass
class Application:
    """Everything the enrichment engine needs, built once at startup."""

    settings: Settings
    database: Database
    repository: CatalogRepository
    registry: LookupStrategyRegistry
    lookup_service: ImageLookupService
    worker: BackgroundImageLookupWorker
    # Anything with an async close(); closed in reverse order at shutdown
    closeables: list[Any] = field(default_factory=list)


# Hey future me, SQLite won't create missing parent directories for its .db file and the
# resulting "unable to open database file" is useless. Create them up front; only for
# file-backed SQLite URLs (":memory:" and other backends return early).
def _ensure_sqlite_directory(database_url: str) -> None:
    url = make_url(database_url)
    if not url.get_backend_name().startswith("sqlite"):
        return
    if not url.database or url.database == ":memory:":
        return
    parent = Path(url.database).expanduser().parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc


def build_registry(
    settings: Settings, barcode_client: UpcItemDbClient, closeables: list[Any]
) -> LookupStrategyRegistry:
    """Register a strategy per media type whose providers are configured."""
    registry = LookupStrategyRegistry()

    openlibrary = OpenLibraryClient(settings.openlibrary)
    closeables.append(openlibrary)
    registry.register(BookLookupStrategy(openlibrary, barcode_client))

    if settings.tmdb.is_configured:
        tmdb = TmdbClient(settings.tmdb)
        closeables.append(tmdb)
        registry.register(MovieLookupStrategy(barcode_client, tmdb))
    else:
        logger.info("TMDB bearer token not set, movie lookups disabled")

    if settings.giantbomb.is_configured:
        giantbomb = GiantBombClient(settings.giantbomb)
        closeables.append(giantbomb)
        registry.register(GameLookupStrategy(barcode_client, giantbomb))
    else:
        logger.info("GiantBomb API key not set, game lookups disabled")

    musicbrainz = MusicBrainzClient(settings.musicbrainz)
    cover_art = CoverArtArchiveClient()
    closeables.extend([musicbrainz, cover_art])
    registry.register(MusicLookupStrategy(musicbrainz, cover_art))

    return registry


def build_application(settings: Settings) -> Application:
    image_settings = settings.image_lookup
    if image_settings.enabled:
        problem = image_settings.validation_error()
        if problem is not None:
            raise ConfigurationError(
                f"Invalid background image lookup settings: {problem}"
            )

    _ensure_sqlite_directory(settings.database.url)
    database = Database(settings.database)
    repository = CatalogRepository(database)

    closeables: list[Any] = []
    barcode_client = UpcItemDbClient(settings.upcitemdb)
    closeables.append(barcode_client)
    registry = build_registry(settings, barcode_client, closeables)

    storage = LocalFileStorageProvider(settings.images.storage_path)
    image_service = ImageService(storage, settings.images)
    lookup_service = ImageLookupService(registry, image_service)
    worker = BackgroundImageLookupWorker(
        image_settings, registry, lookup_service, repository
    )

    return Application(
        settings=settings,
        database=database,
        repository=repository,
        registry=registry,
        lookup_service=lookup_service,
        worker=worker,
        closeables=closeables,
    )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[Application]:
    """Startup before yield, shutdown after. Shutdown always runs."""
    settings = settings or get_settings()
    observability = settings.observability

    configure_logging(
        log_level=observability.log_level,
        json_format=observability.log_json_format,
        app_name=settings.app_name,
    )
    if observability.tracing_enabled:
        configure_tracing(
            service_name=settings.app_name,
            environment=observability.environment,
            otlp_endpoint=observability.otlp_endpoint,
        )

    app = build_application(settings)
    try:
        await app.database.create_tables()
        logger.info(
            "Lookup strategies available for: %s",
            ", ".join(mt.value for mt in app.registry.available_media_types()),
        )
        await app.worker.start()
        yield app
    finally:
        await app.worker.stop()
        for closeable in reversed(app.closeables):
            try:
                await closeable.close()
            except Exception as e:
                logger.warning("Error closing %s: %s", type(closeable).__name__, e)
        await HttpClientPool.close()
        await app.database.close()
        logger.info("Shutdown complete")


async def main() -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Not available on Windows event loops; Ctrl+C still raises KeyboardInterrupt there
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    async with lifespan() as app:
        if not app.worker.is_running:
            logger.info(
                "Background image lookup is disabled (IMAGE_LOOKUP_ENABLED=false), exiting"
            )
            return
        await stop.wait()
        logger.info("Stop signal received")


def run() -> None:
    """Console script entry point."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())
