"""
Facial region extraction.

Slices a 68-point detection into named regions (eyes, nose, mouth, jaw) and
computes each region's axis-aligned bounding box and centroid. Everything
here is recomputed from scratch every frame.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import Iterator, Tuple
from numpy.typing import NDArray

from .landmarks import Detection, REGION_INDEX_RANGES, REGION_ORDER

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in frame pixel coordinates. Width and height are never negative."""
    x: float
    y: float
    w: float
    h: float

    def __post_init__(self):
        if self.w < 0 or self.h < 0:
            raise ValueError(f"BoundingBox size must be non-negative, got {self.w}x{self.h}")

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.w / 2.0, self.y + self.h / 2.0)

    @property
    def area(self) -> float:
        return self.w * self.h

    @property
    def is_degenerate(self) -> bool:
        """True when the box has zero width or height."""
        return self.w <= 0 or self.h <= 0

    def expand(self, factor: float) -> "BoundingBox":
        return expand_box(self, factor)


@dataclass(frozen=True)
class FeatureRegion:
    """
    One named facial region.

    Attributes:
        name: Region name (see REGION_INDEX_RANGES)
        points: Region landmarks, shape (N, 2)
        box: Bounding box of the points
        center: Centroid (mean) of the points
    """
    name: str
    points: NDArray[np.float32]
    box: BoundingBox
    center: Tuple[float, float]

    @property
    def is_degenerate(self) -> bool:
        return self.box.is_degenerate


@dataclass(frozen=True)
class FacialFeatures:
    """The five regions of one detected face."""
    left_eye: FeatureRegion
    right_eye: FeatureRegion
    nose: FeatureRegion
    mouth: FeatureRegion
    jaw: FeatureRegion

    def __getitem__(self, name: str) -> FeatureRegion:
        if name not in REGION_INDEX_RANGES:
            raise KeyError(name)
        return getattr(self, name)

    def __iter__(self) -> Iterator[FeatureRegion]:
        for name in REGION_ORDER:
            yield getattr(self, name)


def compute_bounding_box(points: NDArray[np.float32]) -> BoundingBox:
    """
    Compute the axis-aligned bounding box of a set of points.

    A single point (or any set of coincident points) gives a zero-size box
    at that point.

    Args:
        points: Points, shape (N, 2), N >= 1

    Returns:
        BoundingBox spanning min to max on each axis
    """
    if len(points) == 0:
        raise ValueError("Cannot compute bounding box of an empty point set")

    min_x, min_y = points.min(axis=0)
    max_x, max_y = points.max(axis=0)

    return BoundingBox(
        x=float(min_x),
        y=float(min_y),
        w=float(max_x - min_x),
        h=float(max_y - min_y),
    )


def compute_centroid(points: NDArray[np.float32]) -> Tuple[float, float]:
    """Arithmetic mean of the points as an (x, y) tuple."""
    if len(points) == 0:
        raise ValueError("Cannot compute centroid of an empty point set")

    mean = points.mean(axis=0)
    return (float(mean[0]), float(mean[1]))


def expand_box(box: BoundingBox, factor: float) -> BoundingBox:
    """
    Scale a box about its own center.

    Args:
        box: Box to scale
        factor: Scale factor (1.0 = unchanged, >1 grows, <1 shrinks)

    Returns:
        New box with the same center and size scaled by factor
    """
    if factor < 0:
        raise ValueError(f"Expansion factor must be non-negative, got {factor}")

    new_w = box.w * factor
    new_h = box.h * factor
    new_x = box.x - (new_w - box.w) / 2.0
    new_y = box.y - (new_h - box.h) / 2.0

    return BoundingBox(x=new_x, y=new_y, w=new_w, h=new_h)


def extract_region(detection: Detection, name: str) -> FeatureRegion:
    """
    Extract a single named region from a detection.

    Raises:
        KeyError: If the region name is unknown
        ValueError: If the region's index range selects no points
    """
    start, stop = REGION_INDEX_RANGES[name]
    points = detection[start:stop]

    if len(points) == 0:
        raise ValueError(f"Region '{name}' has an empty index range [{start}, {stop})")

    region = FeatureRegion(
        name=name,
        points=points,
        box=compute_bounding_box(points),
        center=compute_centroid(points),
    )

    if region.is_degenerate:
        logger.debug("Region %s is degenerate: %s", name, region.box)

    return region


def extract_features(detection: Detection) -> FacialFeatures:
    """
    Slice a detection into its named facial regions.

    Args:
        detection: 68-point landmarks, shape (68, 2)

    Returns:
        FacialFeatures with box and centroid for each region
    """
    return FacialFeatures(**{
        name: extract_region(detection, name) for name in REGION_ORDER
    })
