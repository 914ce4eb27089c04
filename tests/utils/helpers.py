"""
Test Helpers
============

Helper functions for common testing operations.
"""

import asyncio
import io
import time
from typing import Callable, Optional, Tuple

from PIL import Image  # type: ignore

from seedmap.models.schemas import CropSpec

CAPTURE_SIZE = (3840, 2160)

__all__ = ["CAPTURE_SIZE", "make_png", "make_capture", "png_size", "png_pixel", "wait_for_condition"]


def make_png(size: Tuple[int, int] = CAPTURE_SIZE, color: Tuple[int, int, int] = (30, 60, 200)) -> bytes:
    """Encode a solid-colour PNG."""
    output = io.BytesIO()
    Image.new("RGB", size, color).save(output, format="PNG")
    return output.getvalue()


def make_capture(
    highlight: Optional[CropSpec] = None,
    size: Tuple[int, int] = CAPTURE_SIZE,
    background: Tuple[int, int, int] = (30, 60, 200),
    fill: Tuple[int, int, int] = (220, 20, 20),
) -> bytes:
    """Encode a fake full-page screenshot, optionally painting one crop area."""
    image = Image.new("RGB", size, background)
    if highlight is not None:
        image.paste(fill, highlight.as_box())
    output = io.BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def png_size(data: bytes) -> Tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


def png_pixel(data: bytes, xy: Tuple[int, int]) -> Tuple[int, ...]:
    with Image.open(io.BytesIO(data)) as image:
        return image.convert("RGB").getpixel(xy)


async def wait_for_condition(
    condition: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.01,
    error_message: str = "Condition not met within timeout",
) -> None:
    """Wait for a condition to become true."""
    start_time = time.time()

    while time.time() - start_time < timeout:
        if condition():
            return
        await asyncio.sleep(interval)

    raise TimeoutError(error_message)
