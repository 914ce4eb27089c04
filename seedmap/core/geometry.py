"""
Crop Geometry
=============

Maps a (dimension, world size) pair to the pixel rectangle that covers the
requested world window in a full-page capture, and to the output image size.

Overworld and End captures are rendered at a fixed zoom, so the window grows
linearly with the world size around a fixed centre. The Nether page is not
zoomed the same way and always uses one fixed window.
"""

import math
from typing import Union

from seedmap.core.errors import InvalidInput, InvalidSize
from seedmap.models.schemas import CropSpec, Dimension

MIN_WORLD_SIZE = 2
MAX_WORLD_SIZE = 16

# Pixels the left/top edge moves per size step below the maximum.
PIXELS_PER_SIZE_STEP = 62.5
OUTPUT_PIXELS_PER_SIZE = 125

# Crop origin at MAX_WORLD_SIZE.
ANCHOR_LEFT = 720
ANCHOR_TOP = 120

NETHER_CROP = CropSpec(left=720, top=120, width=2000, height=2000, output_size=1000)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def is_valid_world_size(world_size: object) -> bool:
    """Check that a world size is an int within the supported range."""
    return (
        isinstance(world_size, int)
        and not isinstance(world_size, bool)
        and MIN_WORLD_SIZE <= world_size <= MAX_WORLD_SIZE
    )


def compute_crop(dimension: Union[Dimension, str], world_size: int) -> CropSpec:
    """
    Compute the crop rectangle and output size for a capture.

    Args:
        dimension: World dimension
        world_size: World size in thousands of blocks

    Returns:
        CropSpec for the capture

    Raises:
        InvalidInput: If the dimension is unknown
        InvalidSize: If the world size is outside the supported range
    """
    try:
        dimension = Dimension(dimension)
    except ValueError:
        raise InvalidInput(f"Unknown dimension: {dimension!r}", error_code="INVALID_DIMENSION")

    if not is_valid_world_size(world_size):
        raise InvalidSize(
            f"World size must be an integer between {MIN_WORLD_SIZE} and {MAX_WORLD_SIZE}, "
            f"got {world_size!r}"
        )

    if dimension is Dimension.NETHER:
        return NETHER_CROP

    offset = (MAX_WORLD_SIZE - world_size) * PIXELS_PER_SIZE_STEP
    side = _round_half_up(world_size * OUTPUT_PIXELS_PER_SIZE)
    return CropSpec(
        left=_round_half_up(ANCHOR_LEFT + offset),
        top=_round_half_up(ANCHOR_TOP + offset),
        width=side,
        height=side,
        output_size=side,
    )
