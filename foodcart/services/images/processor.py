"""
Image Processor

Shrinks and recompresses a user-selected image into a JPEG data URL
before it is previewed or uploaded.

    - Width is capped at max_width, height follows the aspect ratio (floored)
    - Transparent images are flattened onto white
    - Output is always image/jpeg, whatever the input format

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import base64
import logging
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from foodcart.core.exceptions import ContextError, DecodeError

logger = logging.getLogger(__name__)

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def scaled_size(width: int, height: int, max_width: int) -> tuple[int, int]:
    """Size that fits max_width while keeping the aspect ratio."""
    if width <= max_width:
        return width, height
    new_height = (height * max_width) // width
    return max_width, max(1, new_height)


def data_url_size(data_url: str) -> int:
    """Length of a data URL as it would be stored or sent."""
    return len(data_url.encode("ascii", errors="ignore"))


class ImageProcessor:
    """
    Client-side style image compression.

    Example:
        >>> processor = ImageProcessor()
        >>> data_url = processor.process(open("pizza.png", "rb").read())
        >>> data_url[:23]
        'data:image/jpeg;base64,'
    """

    def __init__(self, max_width: int = 800, quality: int = 70):
        self.max_width = max_width
        self.quality = quality

    def _decode(self, file_bytes: bytes) -> Image.Image:
        try:
            image = Image.open(BytesIO(file_bytes))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            logger.warning(f"Image decode failed: {e}")
            raise DecodeError("Image could not be loaded") from e
        return image

    def _render(self, image: Image.Image, size: tuple[int, int]) -> Image.Image:
        """Draw the source onto an RGB surface of the target size."""
        try:
            if image.mode == "P":
                image = image.convert("RGBA")

            if image.mode in ("RGBA", "LA"):
                surface = Image.new("RGB", image.size, (255, 255, 255))
                surface.paste(image, mask=image.getchannel("A"))
            else:
                surface = image.convert("RGB")

            if surface.size != size:
                surface = surface.resize(size, Image.Resampling.LANCZOS)
        except (ValueError, MemoryError, OSError) as e:
            logger.error(f"Could not create drawing surface {size}: {e}")
            raise ContextError("Could not create drawing surface") from e
        return surface

    def process(self, file_bytes: bytes, max_width: Optional[int] = None) -> str:
        """
        Resize and re-encode an image as a JPEG data URL.

        Args:
            file_bytes: Raw bytes of any Pillow-readable image
            max_width: Width cap in pixels (defaults to the processor's)

        Returns:
            str: "data:image/jpeg;base64,..." data URL

        Raises:
            DecodeError: If the bytes are not an image or exceed Pillow's pixel limit
            ContextError: If the output surface cannot be created
        """
        max_width = max_width or self.max_width
        image = self._decode(file_bytes)

        width, height = image.size
        size = scaled_size(width, height, max_width)
        surface = self._render(image, size)

        output = BytesIO()
        try:
            surface.save(output, format="JPEG", quality=self.quality)
        except (OSError, ValueError) as e:
            raise ContextError("Could not encode image as JPEG") from e

        encoded = base64.b64encode(output.getvalue()).decode("ascii")
        logger.debug(
            f"Image processed: {width}x{height} -> {size[0]}x{size[1]}, "
            f"{len(file_bytes) / 1024:.1f}KB -> {output.tell() / 1024:.1f}KB"
        )
        return DATA_URL_PREFIX + encoded

    async def process_async(self, file_bytes: bytes, max_width: Optional[int] = None) -> str:
        """Run process() in a worker thread so request handlers stay responsive."""
        return await asyncio.to_thread(self.process, file_bytes, max_width)
