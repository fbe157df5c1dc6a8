"""Per-entity cover image enrichment.

Hey future me - this service decides WHAT an attempt means; it never writes to storage.
It returns an EnrichmentOutcome and the background worker persists it. Two kinds of
failure come out of here:
- permanent: no id, no lookup identifier, or no strategy for the media/identifier combo
- transient: a provider raised, the lookup found nothing usable, or the download failed
Provider and download errors never escape enrich(); anything else (a bug, a broken
payload) does, and the worker records it as a processing error.
"""

from __future__ import annotations

import logging

from mediaset.application.services.lookup.registry import (
    LookupStrategyRegistry,
    Unsupported,
)
from mediaset.domain.entities import CatalogEntity, EnrichmentOutcome
from mediaset.domain.exceptions import DomainException, ImageDownloadError
from mediaset.domain.ports import IImageService
from mediaset.infrastructure.observability.tracing import get_tracer

logger = logging.getLogger(__name__)
_tracer = get_tracer(__name__)

MISSING_ID = "Entity does not have an Id"
MISSING_IDENTIFIER = "Entity lacks required lookup identifier"
NO_IMAGE_URL = "No image URL returned from lookup"


class ImageLookupService:
    """Finds and stores a cover image for one catalog entity."""

    def __init__(
        self, registry: LookupStrategyRegistry, image_service: IImageService
    ) -> None:
        self._registry = registry
        self._images = image_service

    async def enrich(self, entity: CatalogEntity) -> EnrichmentOutcome:
        media_type = entity.media_type
        with _tracer.start_as_current_span("enrichment.entity") as span:
            span.set_attribute("media.type", media_type.value)

            if not entity.id:
                return EnrichmentOutcome.failed(MISSING_ID, permanent=True)
            span.set_attribute("entity.id", entity.id)

            # An image URL typed in by the user (or imported) beats a provider lookup.
            # If it's dead we just carry on with the lookup.
            existing_url = (entity.image_url or "").strip()
            if existing_url:
                try:
                    saved = await self._images.download_and_save_image(
                        existing_url, media_type.value, entity.id
                    )
                    logger.info(
                        "Stored existing image URL for %s %s", media_type.value, entity.id
                    )
                    return EnrichmentOutcome.ok(existing_url, saved)
                except ImageDownloadError as e:
                    logger.warning(
                        "Existing image URL failed for %s %s, falling back to lookup: %s",
                        media_type.value,
                        entity.id,
                        e,
                    )

            identifier = (entity.lookup_identifier() or "").strip()
            if not identifier:
                return EnrichmentOutcome.failed(MISSING_IDENTIFIER, permanent=True)
            identifier_type = entity.lookup_identifier_type()
            span.set_attribute("identifier.type", identifier_type.value)

            resolution = self._registry.get_strategy(media_type, identifier_type)
            if isinstance(resolution, Unsupported):
                logger.info(resolution.message)
                return EnrichmentOutcome.failed(resolution.message, permanent=True)

            try:
                result = await resolution.strategy.lookup(identifier_type, identifier)
            except DomainException as e:
                logger.warning(
                    "Lookup failed for %s %s (%s %s): %s",
                    media_type.value,
                    entity.id,
                    identifier_type.value,
                    identifier,
                    e,
                )
                return EnrichmentOutcome.failed(f"Lookup error: {e}")

            image_url = (result.image_url or "").strip() if result is not None else ""
            if not image_url:
                logger.info(
                    "Lookup for %s %s returned no image URL", media_type.value, entity.id
                )
                return EnrichmentOutcome.failed(NO_IMAGE_URL)

            try:
                saved = await self._images.download_and_save_image(
                    image_url, media_type.value, entity.id
                )
            except ImageDownloadError as e:
                logger.warning(
                    "Download failed for %s %s from %s: %s",
                    media_type.value,
                    entity.id,
                    image_url,
                    e,
                )
                return EnrichmentOutcome.failed(
                    f"Download failed: {e}", image_url=image_url
                )

            logger.info(
                "Enriched %s %s with cover from %s", media_type.value, entity.id, image_url
            )
            return EnrichmentOutcome.ok(image_url, saved)
