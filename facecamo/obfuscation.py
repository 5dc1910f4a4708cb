"""
Pixel obfuscation effects: blur and mosaic.

Both work the same way: cut the expanded region box out of the snapshot
into an offscreen buffer, filter the buffer, and write it back at the same
position. The box is clipped to the frame, so regions near the border are
filtered only where they overlap the frame.
"""

import logging
import cv2
import numpy as np
from typing import Optional, Tuple
from numpy.typing import NDArray

from .canvas import Canvas
from .config import DistortionParameters, EffectStyle
from .regions import BoundingBox, FacialFeatures
from .strategy import DistortionStrategy, REGION_EXPANSION, usable_regions
from .utils import odd_kernel_size

logger = logging.getLogger(__name__)

# Blur radius in pixels at style intensity 1.0
MAX_BLUR_RADIUS = 20.0


def clip_box(box: BoundingBox, width: int, height: int) -> Optional[Tuple[int, int, int, int]]:
    """
    Clip a box to the frame and truncate it to integer pixel bounds.

    Returns:
        (x0, y0, x1, y1) with x1 > x0 and y1 > y0, or None if nothing is
        left inside the frame
    """
    x0 = max(int(box.x), 0)
    y0 = max(int(box.y), 0)
    x1 = min(int(box.x + box.w), width)
    y1 = min(int(box.y + box.h), height)
    if x1 <= x0 or y1 <= y0:
        return None
    return x0, y0, x1, y1


def blur_buffer(buffer: NDArray[np.uint8], radius: float) -> NDArray[np.uint8]:
    """Gaussian blur with the given radius. Radius 0 returns the buffer unchanged."""
    if radius <= 0:
        return buffer
    ksize = odd_kernel_size(radius)
    return cv2.GaussianBlur(buffer, (ksize, ksize), 0, borderType=cv2.BORDER_REPLICATE)


def pixelate_buffer(buffer: NDArray[np.uint8], tile_size: float) -> NDArray[np.uint8]:
    """
    Fill square tiles with the pixel at each tile's center.

    Tiles start at the buffer's top-left corner. Edge tiles are cut off by
    the buffer bounds, and their sample point is clamped inside the buffer.

    Args:
        buffer: Image, shape (H, W, 3); not modified
        tile_size: Tile side in pixels (fractional sizes allowed, >= 1)

    Returns:
        New pixelated image
    """
    tile_size = max(float(tile_size), 1.0)
    h, w = buffer.shape[:2]
    out = buffer.copy()

    y = 0.0
    while y < h:
        x = 0.0
        y0, y1 = int(y), min(int(y + tile_size), h)
        sy = min(int(y + tile_size / 2), h - 1)
        while x < w:
            x0, x1 = int(x), min(int(x + tile_size), w)
            sx = min(int(x + tile_size / 2), w - 1)
            if x1 > x0 and y1 > y0:
                out[y0:y1, x0:x1] = buffer[sy, sx]
            x += tile_size
        y += tile_size

    return out


class _BufferedRegionStrategy(DistortionStrategy):
    """Filters each region's expanded box through an offscreen buffer."""

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        height, width = snapshot.shape[:2]

        for region in usable_regions(features):
            bounds = clip_box(region.box.expand(REGION_EXPANSION), width, height)
            if bounds is None:
                logger.debug("Region %s is outside the frame", region.name)
                continue

            x0, y0, x1, y1 = bounds
            buffer = snapshot[y0:y1, x0:x1].copy()
            canvas.put_image(self.filter(buffer, params, style), x0, y0)

    def filter(
        self,
        buffer: NDArray[np.uint8],
        params: DistortionParameters,
        style: EffectStyle
    ) -> NDArray[np.uint8]:
        raise NotImplementedError


class BlurStrategy(_BufferedRegionStrategy):
    """Gaussian-blur each feature. Style intensity 0-1 maps to radius 0-20 px."""

    name = "blur"

    def filter(self, buffer, params, style):
        return blur_buffer(buffer, self.style_intensity(style) * MAX_BLUR_RADIUS)


class MosaicStrategy(_BufferedRegionStrategy):
    """Pixelate each feature. Tile size is the mosaic size times (1 + intensity)."""

    name = "mosaic"

    def filter(self, buffer, params, style):
        tile_size = self.style_intensity(style) * (1.0 + params.intensity)
        return pixelate_buffer(buffer, tile_size)
