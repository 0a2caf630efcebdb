"""
Storage Service Abstract Base Class

Defines the interface contract for blob-storage backends.
Both MockStorageService and SupabaseStorageService implement these
methods, so the uploader behaves identically whichever is active.

Backends report every failure as StorageBackendError; the uploader
maps it to the step-specific error (unavailable / upload / URL).

Author: Khalil Bannouri
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class BucketInfo:
    """Summary of a storage bucket."""
    name: str
    public: bool = False
    file_size_limit: Optional[int] = None


@dataclass
class StoredObject:
    """Result of a successful object upload."""
    bucket: str
    path: str
    size: int
    content_type: str


class BaseStorageService(ABC):
    """Abstract base class for blob-storage backends."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name (e.g., "mock", "supabase")."""
        pass

    @abstractmethod
    async def list_buckets(self) -> list[BucketInfo]:
        """List the buckets visible to this client."""
        pass

    @abstractmethod
    async def create_bucket(
        self,
        name: str,
        public: bool = True,
        file_size_limit: Optional[int] = None,
    ) -> BucketInfo:
        """Create a bucket."""
        pass

    @abstractmethod
    async def upload_object(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StoredObject:
        """Store raw bytes under bucket/path."""
        pass

    @abstractmethod
    async def get_public_url(self, bucket: str, path: str) -> str:
        """Public URL of an object in a public bucket."""
        pass

    @abstractmethod
    async def remove_objects(self, bucket: str, paths: list[str]) -> None:
        """Delete objects."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check backend connectivity."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None
