"""Background workers."""

from mediaset.application.workers.background_image_lookup_worker import (
    BackgroundImageLookupWorker,
    allocate_batch,
)

__all__ = ["BackgroundImageLookupWorker", "allocate_batch"]
