"""Image byte storage backends."""

from mediaset.infrastructure.storage.local_file_storage import LocalFileStorageProvider

__all__ = ["LocalFileStorageProvider"]
