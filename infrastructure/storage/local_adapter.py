"""
Local Storage Adapter
=====================

StorageInterface implementation on Django's FileSystemStorage, used for
development and tests.
"""

import logging
from typing import BinaryIO, Optional

from django.conf import settings
from django.core.files.base import File
from django.core.files.storage import FileSystemStorage

from .interface import StorageException, StorageFile, StorageInterface

logger = logging.getLogger(__name__)


class LocalStorageAdapter(StorageInterface):
    def __init__(self, location: Optional[str] = None):
        self.storage = FileSystemStorage(location=location or settings.MEDIA_ROOT, base_url=settings.MEDIA_URL)

    def upload(self, file: BinaryIO, path: str, content_type: str) -> StorageFile:
        try:
            saved_path = self.storage.save(path, File(file))
            logger.info(f"Stored file locally: {saved_path}")
            return StorageFile(
                key=saved_path,
                url=self.storage.url(saved_path),
                size=self.storage.size(saved_path),
                content_type=content_type,
            )
        except OSError as e:
            logger.error(f"Failed to store file locally: {path}. Error: {str(e)}")
            raise StorageException(f"Local upload failed: {str(e)}") from e

    def delete(self, key: str) -> bool:
        if not self.storage.exists(key):
            return False
        self.storage.delete(key)
        return True

    def get_url(self, key: str, expires_in: int = 3600) -> str:
        return self.storage.url(key)

    def exists(self, key: str) -> bool:
        return self.storage.exists(key)

    def read(self, key: str) -> bytes:
        try:
            with self.storage.open(key, "rb") as handle:
                return handle.read()
        except OSError as e:
            raise StorageException(f"Local read failed: {str(e)}") from e
