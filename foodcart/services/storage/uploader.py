"""
Storage Uploader

Turns an image data URL into a public URL in the storage bucket.

Contract:
    upload() always raises on failure. It never substitutes a placeholder;
    callers that want to degrade must do so explicitly, typically through
    try_upload() and its UploadResult.

Steps:
    1. Validate the data URL header (no network call on bad input)
    2. Make sure the bucket exists (create it public, 5 MiB cap)
    3. Build a collision-resistant object name
    4. Decode the base64 payload in chunks
    5. Upload with upsert
    6. Resolve the public URL

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import base64
import binascii
import logging
import random
import re
import string
import time
from dataclasses import dataclass
from typing import Optional

from foodcart.core.exceptions import (
    FoodCartError,
    InvalidInputError,
    StorageBackendError,
    StorageUnavailableError,
    UploadError,
    UrlResolutionError,
    ValidationError,
)
from foodcart.services.storage.base import BaseStorageService

logger = logging.getLogger(__name__)

DATA_URL_PATTERN = re.compile(r"^data:(image/[a-z0-9.+-]+);base64,", re.IGNORECASE)

# Multiple of 4 so every chunk decodes independently
DECODE_CHUNK_CHARS = 64 * 1024


def parse_data_url_header(data_url: str) -> Optional[str]:
    """Content type of an image data URL, or None if it is not one."""
    if not isinstance(data_url, str):
        return None
    match = DATA_URL_PATTERN.match(data_url)
    return match.group(1).lower() if match else None


def decode_data_url(data_url: str, chunk_chars: int = DECODE_CHUNK_CHARS) -> tuple[bytes, str]:
    """
    Decode an image data URL into raw bytes and its content type.

    The payload is decoded chunk by chunk so arbitrarily large
    images never need one single-pass decode.

    Raises:
        InvalidInputError: If the header or the base64 payload is malformed
    """
    content_type = parse_data_url_header(data_url)
    if content_type is None:
        raise InvalidInputError("Not a base64 image data URL")

    payload = "".join(data_url[data_url.index(",") + 1:].split())
    if len(payload) % 4:
        raise InvalidInputError("Base64 payload has an invalid length")

    buffer = bytearray()
    try:
        for offset in range(0, len(payload), chunk_chars):
            buffer.extend(base64.b64decode(payload[offset:offset + chunk_chars], validate=True))
    except binascii.Error as e:
        raise InvalidInputError(f"Invalid base64 payload: {e}") from e

    return bytes(buffer), content_type


def generate_object_name(now_ms: Optional[int] = None) -> str:
    """{unix_millis}_{6 random chars}.jpg"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{now_ms}_{suffix}.jpg"


@dataclass
class UploadResult:
    """
    Tagged outcome of an upload.

    Exactly one of url / error is set. Callers branch on success
    and decide themselves whether to degrade.
    """
    success: bool
    url: Optional[str] = None
    error: Optional[FoodCartError] = None
    error_message: Optional[str] = None


@dataclass
class StorageStatus:
    """Result of the storage availability probe."""
    checked: bool
    ready: bool
    provider: str = "unknown"
    message: Optional[str] = None


class StorageUploader:
    """
    Uploads data URLs to a storage bucket.

    Example:
        >>> uploader = StorageUploader(get_storage_service())
        >>> url = await uploader.upload_with_retry(data_url, "dishes")
    """

    def __init__(
        self,
        storage: BaseStorageService,
        bucket: str = "food-images",
        bucket_size_limit: int = 5 * 1024 * 1024,
        retry_delay_seconds: float = 1.0,
    ):
        self.storage = storage
        self.bucket = bucket
        self.bucket_size_limit = bucket_size_limit
        self.retry_delay_seconds = retry_delay_seconds

    async def ensure_bucket(self) -> None:
        """
        Make sure the target bucket exists.

        Raises:
            StorageUnavailableError: If buckets cannot be listed or created
        """
        try:
            buckets = await self.storage.list_buckets()
        except StorageBackendError as e:
            logger.error(f"Could not list storage buckets: {e}")
            raise StorageUnavailableError(f"Storage service unavailable: {e.message}") from e

        if any(bucket.name == self.bucket for bucket in buckets):
            return

        try:
            await self.storage.create_bucket(
                self.bucket,
                public=True,
                file_size_limit=self.bucket_size_limit,
            )
        except StorageBackendError as e:
            logger.error(f"Could not create bucket {self.bucket}: {e}")
            raise StorageUnavailableError(f"Could not create bucket: {e.message}") from e

        logger.info(f"Created storage bucket {self.bucket}")

    async def upload(self, data_url: str, path_prefix: str = "dishes") -> str:
        """
        Upload an image data URL and return its public URL.

        Raises:
            InvalidInputError: Bad data URL (raised before any storage call)
            StorageUnavailableError: Bucket missing and not creatable
            UploadError: The backend rejected the object
            UrlResolutionError: No public URL for the stored object
        """
        if parse_data_url_header(data_url) is None:
            raise InvalidInputError("Invalid image data: expected a data:image/...;base64, URL")

        await self.ensure_bucket()

        object_path = f"{path_prefix.strip('/')}/{generate_object_name()}"
        payload, content_type = decode_data_url(data_url)

        try:
            await self.storage.upload_object(
                self.bucket,
                object_path,
                payload,
                content_type=content_type,
                upsert=True,
            )
        except StorageBackendError as e:
            logger.error(f"Upload of {object_path} failed: {e}")
            raise UploadError(f"Image upload failed: {e.message}", detail=e.detail) from e

        try:
            url = await self.storage.get_public_url(self.bucket, object_path)
        except StorageBackendError as e:
            raise UrlResolutionError(f"Could not resolve public URL: {e.message}") from e
        if not url:
            raise UrlResolutionError(f"No public URL for {object_path}")

        logger.info(f"Image uploaded: {url}")
        return url

    async def upload_with_retry(
        self,
        data_url: str,
        path_prefix: str = "dishes",
        retries: int = 2,
    ) -> str:
        """
        upload() with linear backoff: waits delay * attempt between tries.

        Validation errors are raised at once; anything else is retried
        until the budget is exhausted, then the last error is re-raised.
        """
        for attempt in range(retries + 1):
            try:
                return await self.upload(data_url, path_prefix)
            except ValidationError:
                raise
            except Exception as e:
                if attempt == retries:
                    logger.error(f"Upload failed after {retries} retries: {e}")
                    raise
                delay = self.retry_delay_seconds * (attempt + 1)
                logger.info(f"Retrying upload in {delay:.1f}s (attempt {attempt + 2}/{retries + 1}): {e}")
                await asyncio.sleep(delay)

        raise UploadError("Upload retry budget exhausted")

    async def try_upload(
        self,
        data_url: str,
        path_prefix: str = "dishes",
        retries: int = 2,
    ) -> UploadResult:
        """upload_with_retry() as a tagged result instead of an exception."""
        try:
            url = await self.upload_with_retry(data_url, path_prefix, retries)
        except FoodCartError as e:
            return UploadResult(success=False, error=e, error_message=e.message)
        return UploadResult(success=True, url=url)

    async def check_availability(self) -> StorageStatus:
        """
        Probe the storage backend end to end.

        Lists buckets, creates the bucket if needed, then writes and
        removes a small test object.
        """
        provider = self.storage.provider_name
        try:
            await self.ensure_bucket()
        except StorageUnavailableError as e:
            return StorageStatus(checked=True, ready=False, provider=provider, message=e.message)

        probe_path = f"test/storage-test-{int(time.time() * 1000)}.txt"
        try:
            await self.storage.upload_object(
                self.bucket, probe_path, b"test", content_type="text/plain", upsert=True
            )
            await self.storage.remove_objects(self.bucket, [probe_path])
        except StorageBackendError as e:
            logger.warning(f"Storage probe upload failed: {e}")
            return StorageStatus(
                checked=True,
                ready=False,
                provider=provider,
                message=f"Test upload failed: {e.message}",
            )

        return StorageStatus(checked=True, ready=True, provider=provider)
