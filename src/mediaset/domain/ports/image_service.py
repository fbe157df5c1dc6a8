"""Image ports: the download service and the byte storage behind it.

Future me note:
Image storage mechanics (local disk, S3, ...) are NOT the enrichment engine's business.
The engine hands a URL to IImageService and gets ImageMetadata back; the service writes
bytes through IImageStorageProvider using relative paths like "game/<id>-<uuid>.jpg".
"""

from __future__ import annotations

from typing import Protocol

from mediaset.domain.entities import ImageMetadata


class IImageStorageProvider(Protocol):
    """Byte storage addressed by relative path."""

    async def save(self, data: bytes, relative_path: str) -> None:
        ...

    async def get(self, relative_path: str) -> bytes | None:
        ...

    async def delete(self, relative_path: str) -> bool:
        ...

    async def exists(self, relative_path: str) -> bool:
        ...


class IImageService(Protocol):
    """Downloads a remote image and stores it for an entity.

    Raises ImageDownloadError on any failure (bad URL, too large, not an image, ...).
    """

    async def download_and_save_image(
        self, image_url: str, entity_type: str, entity_id: str
    ) -> ImageMetadata:
        ...
