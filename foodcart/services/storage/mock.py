"""
Mock Storage Service Implementation

In-memory blob storage used in development mode (ENV_MODE=development)
and in tests:
    - Run the full upload flow without a storage project
    - Serve stored objects back from the API for previews
    - Inject failures to exercise retry paths

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import random
from typing import Optional

from foodcart.core.exceptions import StorageBackendError
from foodcart.services.storage.base import BaseStorageService, BucketInfo, StoredObject

logger = logging.getLogger(__name__)


class MockStorageService(BaseStorageService):
    """
    In-memory implementation of the storage service.

    Attributes:
        public_base_url: Host used to build public object URLs
        failure_rate: Probability of a simulated upload failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds

    Example:
        >>> storage = MockStorageService("http://localhost:8001")
        >>> await storage.create_bucket("food-images")
        >>> await storage.upload_object("food-images", "a.jpg", b"...", "image/jpeg")
    """

    def __init__(
        self,
        public_base_url: str = "http://localhost:8001",
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.public_base_url = public_base_url.rstrip("/")
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency

        # Failure switches for tests
        self.fail_listing = False
        self.fail_bucket_creation = False
        self.fail_next_uploads = 0

        self.buckets: dict[str, BucketInfo] = {}
        self.objects: dict[tuple[str, str], tuple[bytes, str]] = {}
        self.calls: list[str] = []

        logger.info(f"MockStorageService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _simulate_latency(self) -> None:
        if self.max_latency > 0:
            await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    async def list_buckets(self) -> list[BucketInfo]:
        self.calls.append("list_buckets")
        await self._simulate_latency()
        if self.fail_listing:
            raise StorageBackendError("Simulated bucket listing failure")
        return list(self.buckets.values())

    async def create_bucket(
        self,
        name: str,
        public: bool = True,
        file_size_limit: Optional[int] = None,
    ) -> BucketInfo:
        self.calls.append("create_bucket")
        await self._simulate_latency()
        if self.fail_bucket_creation:
            raise StorageBackendError(
                "new row violates row-level security policy (simulated)"
            )
        if name in self.buckets:
            raise StorageBackendError(f"Bucket '{name}' already exists")

        bucket = BucketInfo(name=name, public=public, file_size_limit=file_size_limit)
        self.buckets[name] = bucket
        logger.info(f"Mock bucket created: {name} (public={public})")
        return bucket

    async def upload_object(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StoredObject:
        self.calls.append("upload_object")
        await self._simulate_latency()

        if self.fail_next_uploads > 0:
            self.fail_next_uploads -= 1
            raise StorageBackendError("Simulated upload failure")
        if self._should_fail():
            raise StorageBackendError("Simulated upload failure")

        info = self.buckets.get(bucket)
        if info is None:
            raise StorageBackendError(f"Bucket not found: {bucket}")
        if info.file_size_limit is not None and len(data) > info.file_size_limit:
            raise StorageBackendError(
                f"Payload too large: {len(data)} bytes exceeds {info.file_size_limit}"
            )
        if (bucket, path) in self.objects and not upsert:
            raise StorageBackendError(f"The resource already exists: {path}")

        self.objects[(bucket, path)] = (data, content_type)
        logger.info(f"Mock object stored: {bucket}/{path} ({len(data)} bytes)")
        return StoredObject(bucket=bucket, path=path, size=len(data), content_type=content_type)

    async def get_public_url(self, bucket: str, path: str) -> str:
        self.calls.append("get_public_url")
        if not bucket or not path:
            raise StorageBackendError("Bucket and path are required")
        return f"{self.public_base_url}/storage/v1/object/public/{bucket}/{path}"

    async def remove_objects(self, bucket: str, paths: list[str]) -> None:
        self.calls.append("remove_objects")
        for path in paths:
            self.objects.pop((bucket, path), None)

    def get_object(self, bucket: str, path: str) -> Optional[tuple[bytes, str]]:
        """Stored bytes and content type, if present."""
        return self.objects.get((bucket, path))

    async def health_check(self) -> bool:
        """Mock is healthy unless listing is switched off."""
        return not self.fail_listing
