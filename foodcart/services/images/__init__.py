"""
Image Processing

Usage:
    from foodcart.services.images import get_image_processor

    data_url = await get_image_processor().process_async(file_bytes)
"""

from functools import lru_cache

from foodcart.core.config import get_settings
from foodcart.services.images.processor import ImageProcessor, data_url_size, scaled_size


@lru_cache()
def get_image_processor() -> ImageProcessor:
    """Processor configured from settings."""
    settings = get_settings()
    return ImageProcessor(
        max_width=settings.image_max_width,
        quality=settings.image_jpeg_quality,
    )


__all__ = ["get_image_processor", "ImageProcessor", "data_url_size", "scaled_size"]
