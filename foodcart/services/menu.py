"""
Menu Service

Sits between the API and MenuRepository for the parts that need
storage: resolving a dish image before its rows are written, and
uploading standalone dish photos.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Sequence

from foodcart.core.config import Settings, get_settings
from foodcart.core.exceptions import InvalidInputError
from foodcart.models import Dish
from foodcart.repositories.menu import LogicalDish, MenuRepository, filter_dishes, group_dishes
from foodcart.services.images import ImageProcessor
from foodcart.services.storage import StorageUploader, parse_data_url_header

logger = logging.getLogger(__name__)

DISH_IMAGE_PREFIX = "dishes"


@dataclass
class CreatedDish:
    rows: list[Dish]
    image: str
    image_degraded: bool = False


class MenuService:
    """
    Dish creation with image upload, and the grouped menu view.

    Example:
        >>> service = MenuService(MenuRepository(session), uploader, processor)
        >>> created = await service.create_dish("Pizza", "", "12.99", data_url, ["main"])
    """

    def __init__(
        self,
        repository: MenuRepository,
        uploader: StorageUploader,
        processor: ImageProcessor,
        settings: Optional[Settings] = None,
    ):
        self.repository = repository
        self.uploader = uploader
        self.processor = processor
        self.settings = settings or get_settings()

    async def resolve_image(self, image: Optional[str], allow_placeholder: bool = False) -> tuple[str, bool]:
        """
        Turn the submitted image into a storable URL.

        Plain URLs are kept as they are. Data URLs are uploaded; if that
        fails the error propagates unless allow_placeholder is set. Any
        other data: value is rejected so no inline image is ever stored.

        Returns:
            (url, degraded)
        """
        if not image:
            return self.settings.placeholder_image, False

        if parse_data_url_header(image) is None:
            if image.lstrip()[:5].lower() == "data:":
                raise InvalidInputError("Inline images must be base64 image data URLs")
            return image, False

        result = await self.uploader.try_upload(
            image,
            DISH_IMAGE_PREFIX,
            retries=self.settings.upload_retries,
        )
        if result.success:
            return result.url, False

        if not allow_placeholder:
            raise result.error

        logger.warning(f"Dish image upload failed, using placeholder: {result.error_message}")
        return self.settings.placeholder_image, True

    async def create_dish(
        self,
        name: str,
        description: str,
        price: Any,
        image: Optional[str],
        category_ids: Sequence[str],
        allow_placeholder: bool = False,
    ) -> CreatedDish:
        """Check the categories, upload the image if needed, then insert one row per category."""
        await self.repository.validate_category_ids(category_ids)
        url, degraded = await self.resolve_image(image, allow_placeholder)
        rows = await self.repository.create_dish(name, description, price, url, category_ids)
        return CreatedDish(rows=rows, image=url, image_degraded=degraded)

    async def upload_dish_image(self, file_bytes: bytes) -> str:
        """Compress an uploaded photo and store it under dishes/."""
        data_url = await self.processor.process_async(file_bytes)
        return await self.uploader.upload_with_retry(
            data_url,
            DISH_IMAGE_PREFIX,
            retries=self.settings.upload_retries,
        )

    async def menu(
        self,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[LogicalDish]:
        rows = await self.repository.list_dishes()
        return filter_dishes(group_dishes(rows), category_id, search)
