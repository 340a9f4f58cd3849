"""
Storage Interface
=================

Abstract base class for private document storage (KYC uploads).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import BinaryIO, Optional


@dataclass
class StorageFile:
    """
    Represents a stored file with its metadata.

    Attributes:
        key: Unique identifier/path for the file
        url: URL to access the file (signed where the backend supports it)
        size: File size in bytes
        content_type: MIME type of the file
        bucket: Storage bucket/container name (optional)
    """

    key: str
    url: str
    size: int
    content_type: str
    bucket: Optional[str] = None


class StorageInterface(ABC):
    """
    Abstract interface for file storage operations.

    Concrete implementations:
        - LocalStorageAdapter: Django FileSystemStorage under MEDIA_ROOT
        - S3StorageAdapter: AWS S3 via django-storages
    """

    @abstractmethod
    def upload(self, file: BinaryIO, path: str, content_type: str) -> StorageFile:
        """
        Upload a file to storage.

        Raises:
            StorageException: If upload fails
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        pass

    @abstractmethod
    def get_url(self, key: str, expires_in: int = 3600) -> str:
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Return the file contents. Raises StorageException if missing."""
        pass


class StorageException(Exception):
    """Base exception for storage operations."""

    pass
