"""Cover image download service."""

from mediaset.application.services.images.image_service import ImageService

__all__ = ["ImageService"]
