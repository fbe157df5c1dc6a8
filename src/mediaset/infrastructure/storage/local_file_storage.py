"""Local filesystem image storage."""

import asyncio
import logging
from pathlib import Path

from mediaset.domain.exceptions import ValidationException

logger = logging.getLogger(__name__)


class LocalFileStorageProvider:
    """Stores image bytes under a root directory using relative paths.

    Hey future me - relative paths come from the image service ("game/<id>-<uuid>.jpg"),
    but entity ids are user data. _resolve() refuses anything that lands outside the root,
    so a crafted id like "../../etc" can't write somewhere it shouldn't.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def _resolve(self, relative_path: str) -> Path:
        if not relative_path or not relative_path.strip():
            raise ValidationException("Image path cannot be empty")
        full_path = (self.root / relative_path).resolve()
        if not full_path.is_relative_to(self.root):
            raise ValidationException(f"Image path escapes storage root: {relative_path}")
        return full_path

    async def save(self, data: bytes, relative_path: str) -> None:
        full_path = self._resolve(relative_path)
        await asyncio.to_thread(full_path.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(full_path.write_bytes, data)
        logger.debug("Saved image: %s (%d bytes)", relative_path, len(data))

    async def get(self, relative_path: str) -> bytes | None:
        full_path = self._resolve(relative_path)
        if not full_path.is_file():
            return None
        return await asyncio.to_thread(full_path.read_bytes)

    async def delete(self, relative_path: str) -> bool:
        full_path = self._resolve(relative_path)
        if not full_path.is_file():
            return False
        await asyncio.to_thread(full_path.unlink)
        logger.debug("Deleted image: %s", relative_path)
        return True

    async def exists(self, relative_path: str) -> bool:
        return self._resolve(relative_path).is_file()
