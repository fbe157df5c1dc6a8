"""Cover image download and storage.

Future me note:
This is the ONLY place that fetches image bytes. Flow:
1. Validate the URL (absolute http/https)
2. Download via the shared HttpClientPool client (or an injected one in tests)
3. Check size (Content-Length first, then actual bytes) and content type
4. Let Pillow verify the bytes really are an image (runs in a thread, CPU-bound)
5. Save as "{entity_type}/{entity_id}-{uuid}.{ext}" through the storage provider

Every failure becomes ImageDownloadError, so the orchestrator has exactly one exception
type to turn into "Download failed: ..." outcomes.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import UTC, datetime
from io import BytesIO
from pathlib import PurePosixPath
from typing import TYPE_CHECKING
from urllib.parse import urlparse

import httpx
from PIL import Image as PILImage
from PIL import UnidentifiedImageError

from mediaset.domain.entities import ImageMetadata
from mediaset.domain.exceptions import ImageDownloadError, ValidationException
from mediaset.infrastructure.integrations.http_pool import HttpClientPool

if TYPE_CHECKING:
    from mediaset.config import ImageSettings
    from mediaset.domain.ports import IImageStorageProvider

logger = logging.getLogger(__name__)

# MIME type -> file extension. jpeg and jpg are the same thing on disk.
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/pjpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}

# Pillow's format names for the same extensions
PIL_FORMATS: dict[str, str] = {
    "JPEG": "jpg",
    "MPO": "jpg",
    "PNG": "png",
    "WEBP": "webp",
    "GIF": "gif",
}


def _verify_image(data: bytes) -> str | None:
    """Return the detected extension, or None if Pillow can't read it."""
    try:
        with PILImage.open(BytesIO(data)) as img:
            detected = img.format
            img.verify()
    except (
        UnidentifiedImageError,
        PILImage.DecompressionBombError,
        OSError,
        SyntaxError,
        ValueError,
    ):
        return None
    return PIL_FORMATS.get(detected or "")


class ImageService:
    """Downloads remote cover images and stores them for catalog entities."""

    def __init__(
        self,
        storage: IImageStorageProvider,
        settings: ImageSettings,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._storage = storage
        self._settings = settings
        self._client = client

    @property
    def allowed_extensions(self) -> set[str]:
        allowed = {ext.lower().lstrip(".") for ext in self._settings.allowed_extensions}
        if "jpeg" in allowed:
            allowed.add("jpg")
        return allowed

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None:
            return self._client
        return await HttpClientPool.get_client(
            timeout=self._settings.download_timeout_seconds
        )

    async def _download(self, image_url: str) -> tuple[bytes, str]:
        max_size = self._settings.max_download_size_bytes
        client = await self._get_client()
        try:
            response = await client.get(
                image_url, timeout=self._settings.download_timeout_seconds
            )
        except httpx.HTTPError as e:
            raise ImageDownloadError(
                f"Failed to download image: {e}", url=image_url
            ) from e

        if not response.is_success:
            raise ImageDownloadError(
                f"Image host returned HTTP {response.status_code}", url=image_url
            )

        declared = response.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > max_size:
            raise ImageDownloadError(
                f"Image size {declared} bytes exceeds maximum of {max_size} bytes",
                url=image_url,
            )

        data = response.content
        if len(data) > max_size:
            raise ImageDownloadError(
                f"Image size {len(data)} bytes exceeds maximum of {max_size} bytes",
                url=image_url,
            )
        if not data:
            raise ImageDownloadError("Image host returned an empty body", url=image_url)

        content_type = (
            response.headers.get("Content-Type", "application/octet-stream")
            .split(";")[0]
            .strip()
            .lower()
        )
        return data, content_type

    async def download_and_save_image(
        self, image_url: str, entity_type: str, entity_id: str
    ) -> ImageMetadata:
        """Download image_url and store it under entity_type/entity_id.

        Raises:
            ImageDownloadError: invalid URL, HTTP failure, too large, or not an image
        """
        if not image_url or not image_url.strip():
            raise ImageDownloadError("Image URL cannot be empty")
        if not entity_type or not entity_id:
            raise ImageDownloadError("Entity type and id are required", url=image_url)

        image_url = image_url.strip()
        parsed = urlparse(image_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ImageDownloadError(
                "Image URL must be a valid HTTP or HTTPS URL", url=image_url
            )

        data, content_type = await self._download(image_url)

        detected = await asyncio.to_thread(_verify_image, data)
        if detected is None:
            raise ImageDownloadError(
                f"Downloaded content is not a valid image ({content_type})",
                url=image_url,
            )

        extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
        # Some CDNs send application/octet-stream; trust what Pillow saw in the bytes,
        # not the URL suffix.
        if extension is None:
            extension = detected
            content_type = next(
                ct for ct, ext in CONTENT_TYPE_EXTENSIONS.items() if ext == extension
            )

        if extension not in self.allowed_extensions:
            raise ImageDownloadError(
                f"Unsupported image type {content_type}. Allowed: "
                f"{', '.join(sorted(self.allowed_extensions))}",
                url=image_url,
            )

        relative_path = f"{entity_type}/{entity_id}-{uuid.uuid4()}.{extension}"
        try:
            await self._storage.save(data, relative_path)
        except (OSError, ValidationException) as e:
            raise ImageDownloadError(f"Failed to store image: {e}", url=image_url) from e

        logger.info(
            "Image downloaded from %s to %s (%d bytes)",
            image_url,
            relative_path,
            len(data),
        )

        now = datetime.now(UTC)
        return ImageMetadata(
            file_name=PurePosixPath(parsed.path).name or relative_path.rsplit("/", 1)[-1],
            file_path=relative_path,
            content_type=content_type,
            file_size=len(data),
            original_url=image_url,
            created_at=now,
            updated_at=now,
        )
