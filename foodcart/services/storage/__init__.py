"""
Storage Service Factory

Provides a single entry point for obtaining the blob-storage backend
and the uploader built on top of it.

Environment Switching:
    - ENV_MODE=development → MockStorageService (in-memory)
    - ENV_MODE=staging / production → SupabaseStorageService

Usage:
    from foodcart.services.storage import get_storage_service, build_uploader

    uploader = build_uploader(get_storage_service())
    url = await uploader.upload_with_retry(data_url, "dishes")

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from functools import lru_cache

from foodcart.core.config import get_settings
from foodcart.services.storage.base import BaseStorageService, BucketInfo, StoredObject
from foodcart.services.storage.mock import MockStorageService
from foodcart.services.storage.supabase import SupabaseStorageService
from foodcart.services.storage.uploader import (
    StorageStatus,
    StorageUploader,
    UploadResult,
    decode_data_url,
    generate_object_name,
    parse_data_url_header,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_storage_service() -> BaseStorageService:
    """
    Get the configured storage backend.

    Raises:
        ValueError: If production mode but storage credentials are missing
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Storage Service: Using MockStorageService (development mode)")
        return MockStorageService(
            public_base_url=settings.app_base_url,
            min_latency=0.05,
            max_latency=0.2,
        )
    else:
        logger.info(
            f"Storage Service: Using SupabaseStorageService "
            f"({settings.env_mode.value} mode)"
        )
        return SupabaseStorageService()


def reset_storage_service() -> None:
    """Clear the cached storage backend."""
    get_storage_service.cache_clear()
    logger.debug("Storage service cache cleared")


def build_uploader(storage: BaseStorageService) -> StorageUploader:
    """Uploader bound to the configured bucket."""
    settings = get_settings()
    return StorageUploader(
        storage,
        bucket=settings.storage_bucket,
        bucket_size_limit=settings.storage_bucket_size_limit,
        retry_delay_seconds=settings.upload_retry_delay_seconds,
    )


__all__ = [
    "get_storage_service",
    "reset_storage_service",
    "build_uploader",
    "BaseStorageService",
    "BucketInfo",
    "StoredObject",
    "MockStorageService",
    "SupabaseStorageService",
    "StorageUploader",
    "StorageStatus",
    "UploadResult",
    "decode_data_url",
    "generate_object_name",
    "parse_data_url_header",
]
