"""
Supabase Storage Service Implementation

Production implementation talking to the Supabase Storage REST API.
Used when ENV_MODE=production or ENV_MODE=staging.

Requirements:
    - STORAGE_URL: project URL, e.g. https://abcd.supabase.co
    - STORAGE_API_KEY: key allowed to list/create buckets and write objects

API Documentation:
    https://supabase.com/docs/reference/api/storage

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

import httpx

from foodcart.core.config import get_settings
from foodcart.core.exceptions import StorageBackendError
from foodcart.services.storage.base import BaseStorageService, BucketInfo, StoredObject

logger = logging.getLogger(__name__)


class SupabaseStorageService(BaseStorageService):
    """
    Supabase Storage backend.

    Uses a single httpx.AsyncClient with the library's default timeouts.

    Example:
        >>> storage = SupabaseStorageService()
        >>> buckets = await storage.list_buckets()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the REST client.

        Raises:
            ValueError: If the project URL or API key is not configured
        """
        settings = get_settings()
        base_url = base_url or settings.storage_url
        api_key = api_key or settings.storage_api_key

        if not base_url or not api_key:
            raise ValueError(
                "STORAGE_URL and STORAGE_API_KEY are required for production mode. "
                "Set them in your .env file or environment variables."
            )

        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/storage/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            },
            transport=transport,
        )

        logger.info("SupabaseStorageService initialized")

    @property
    def provider_name(self) -> str:
        return "supabase"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Storage transport error on {method} {url}: {e}")
            raise StorageBackendError(f"Storage request failed: {e}") from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = None
            message = (body.get("message") if isinstance(body, dict) else None) or response.text
            logger.error(f"Storage error {response.status_code} on {method} {url}: {message}")
            raise StorageBackendError(
                f"Storage returned {response.status_code}: {message}",
                detail={"status_code": response.status_code},
            )
        return response

    async def list_buckets(self) -> list[BucketInfo]:
        response = await self._request("GET", "/bucket")
        return [
            BucketInfo(
                name=item.get("name") or item.get("id"),
                public=bool(item.get("public")),
                file_size_limit=item.get("file_size_limit"),
            )
            for item in response.json()
        ]

    async def create_bucket(
        self,
        name: str,
        public: bool = True,
        file_size_limit: Optional[int] = None,
    ) -> BucketInfo:
        payload: dict[str, Any] = {"id": name, "name": name, "public": public}
        if file_size_limit is not None:
            payload["file_size_limit"] = file_size_limit

        await self._request("POST", "/bucket", json=payload)
        logger.info(f"Created bucket {name} (public={public})")
        return BucketInfo(name=name, public=public, file_size_limit=file_size_limit)

    async def upload_object(
        self,
        bucket: str,
        path: str,
        data: bytes,
        content_type: str,
        upsert: bool = False,
    ) -> StoredObject:
        await self._request(
            "POST",
            f"/object/{bucket}/{path}",
            content=data,
            headers={
                "Content-Type": content_type,
                "x-upsert": "true" if upsert else "false",
            },
        )
        return StoredObject(bucket=bucket, path=path, size=len(data), content_type=content_type)

    async def get_public_url(self, bucket: str, path: str) -> str:
        if not bucket or not path:
            raise StorageBackendError("Bucket and path are required")
        return f"{self._base_url}/storage/v1/object/public/{bucket}/{path}"

    async def remove_objects(self, bucket: str, paths: list[str]) -> None:
        await self._request("DELETE", f"/object/{bucket}", json={"prefixes": paths})

    async def health_check(self) -> bool:
        try:
            await self.list_buckets()
            return True
        except StorageBackendError:
            return False

    async def close(self) -> None:
        await self._client.aclose()
