"""
Image Processor
===============

Crop, resize and encode full-page captures with Pillow.
All methods are synchronous and CPU bound; callers run them in a worker thread.
"""

from typing import Any
import io

from PIL import Image  # type: ignore

from seedmap.config.logging import get_logger
from seedmap.models.schemas import CropSpec

logger = get_logger(__name__)


class ImageProcessingError(Exception):
    """Exception raised when a capture cannot be cropped, resized or encoded."""

    pass


class MapImageProcessor:
    """Pillow-based crop + resize + encode pipeline for map captures."""

    def __init__(self, image_format: str = "PNG", optimize: bool = True):
        self.image_format = image_format
        self.optimize = optimize
        self.logger: Any = logger.bind(component="image_processor")

    def crop(self, image_bytes: bytes, crop: CropSpec) -> bytes:
        """Extract the crop rectangle and return it as encoded bytes."""
        image = self._load(image_bytes)
        return self._save(self._crop_image(image, crop), self.image_format)

    def resize(self, image_bytes: bytes, size: int) -> bytes:
        """Resize an image to a size x size square."""
        image = self._load(image_bytes)
        return self._save(self._resize_image(image, size), self.image_format)

    def encode(self, image_bytes: bytes, image_format: str = "PNG") -> bytes:
        """Re-encode an image into the given format."""
        return self._save(self._load(image_bytes), image_format)

    def process(self, image_bytes: bytes, crop: CropSpec) -> bytes:
        """
        Crop a capture, scale it to the output size and encode it.

        Args:
            image_bytes: Raw full-page screenshot
            crop: Crop rectangle and output size

        Returns:
            Encoded square image

        Raises:
            ImageProcessingError: If the capture cannot be processed
        """
        image = self._load(image_bytes)
        original_size = image.size

        result = self._resize_image(self._crop_image(image, crop), crop.output_size)
        encoded = self._save(result, self.image_format)

        self.logger.info(
            "Image processing completed",
            original_dimensions=f"{original_size[0]}x{original_size[1]}",
            original_size=len(image_bytes),
            processed_size=len(encoded),
            crop=crop.model_dump(),
        )
        return encoded

    def _load(self, image_bytes: bytes) -> Image.Image:
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
            return image
        except Exception as e:
            raise ImageProcessingError(f"Could not decode image: {e}")

    def _crop_image(self, image: Image.Image, crop: CropSpec) -> Image.Image:
        right, bottom = crop.left + crop.width, crop.top + crop.height
        if right > image.width or bottom > image.height:
            raise ImageProcessingError(
                f"Crop area {crop.as_box()} exceeds image bounds {image.width}x{image.height}"
            )
        return image.crop(crop.as_box())

    def _resize_image(self, image: Image.Image, size: int) -> Image.Image:
        if size <= 0:
            raise ImageProcessingError(f"Invalid output size: {size}")
        if image.size == (size, size):
            return image
        return image.resize((size, size), Image.Resampling.LANCZOS)

    def _save(self, image: Image.Image, image_format: str) -> bytes:
        output = io.BytesIO()
        try:
            if image_format.upper() == "PNG":
                image.save(output, format="PNG", optimize=self.optimize)
            else:
                if image.mode in ("RGBA", "LA", "P"):
                    image = image.convert("RGB")
                image.save(output, format=image_format.upper())
        except Exception as e:
            raise ImageProcessingError(f"Could not encode image as {image_format}: {e}")
        return output.getvalue()
