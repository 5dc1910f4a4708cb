"""
Geometric displacement effects: stretch, bulge, twist.

Each effect copies a region's expanded box from the snapshot back onto the
canvas at a new position or orientation. Copies are rigid and same-size; the
distortion comes from moving, recentering or rotating them.
"""

import math
import numpy as np
from numpy.typing import NDArray

from .canvas import Canvas
from .config import DistortionParameters, EffectStyle
from .regions import FacialFeatures
from .strategy import DistortionStrategy, REGION_EXPANSION, usable_regions


# Per-region displacement direction, as a fraction of the region's box size
STRETCH_DIRECTIONS = {
    "left_eye": (-0.3, 0.4),
    "right_eye": (0.3, 0.4),
    "nose": (0.0, 0.2),
    "mouth": (0.0, 0.5),
}


class StretchStrategy(DistortionStrategy):
    """Pull eyes outward and down, and nose and mouth down."""

    name = "stretch"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        for region in usable_regions(features):
            dir_x, dir_y = STRETCH_DIRECTIONS[region.name]
            box = region.box
            cx, cy = region.center
            expanded = box.expand(REGION_EXPANSION)

            new_cx = cx + box.w * dir_x * params.intensity
            new_cy = cy + box.h * dir_y * params.intensity

            canvas.copy(
                snapshot,
                expanded.x, expanded.y, expanded.w, expanded.h,
                new_cx - expanded.w / 2, new_cy - expanded.h / 2,
                expanded.w, expanded.h
            )


class BulgeStrategy(DistortionStrategy):
    """Copy a larger neighbourhood of each region, recentered on its centroid."""

    name = "bulge"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        factor = REGION_EXPANSION * (1.0 + params.intensity * 0.5)

        for region in usable_regions(features):
            cx, cy = region.center
            expanded = region.box.expand(factor)

            canvas.copy(
                snapshot,
                expanded.x, expanded.y, expanded.w, expanded.h,
                cx - expanded.w / 2, cy - expanded.h / 2,
                expanded.w, expanded.h
            )


class TwistStrategy(DistortionStrategy):
    """Rotate each region about its centroid by intensity * 45 degrees."""

    name = "twist"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        angle = params.intensity * math.pi / 4

        for region in usable_regions(features):
            cx, cy = region.center
            expanded = region.box.expand(REGION_EXPANSION)

            with canvas.saved():
                canvas.translate(cx, cy)
                canvas.rotate(angle)
                canvas.translate(-cx, -cy)
                canvas.copy(
                    snapshot,
                    expanded.x, expanded.y, expanded.w, expanded.h,
                    cx - expanded.w / 2, cy - expanded.h / 2,
                    expanded.w, expanded.h
                )
