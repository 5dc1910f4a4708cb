"""
Distortion strategy interface.

A strategy turns one face's regions into drawing on the output canvas. It
reads pixels only from the frame snapshot and writes only through the
canvas, so strategies never see their own output.
"""

import logging
import numpy as np
from abc import ABC, abstractmethod
from typing import Iterator, Optional, Tuple
from numpy.typing import NDArray

from .canvas import Canvas
from .config import DistortionParameters, EffectStyle, STYLE_VARIANTS, STYLE_INTENSITY_RANGES
from .landmarks import FEATURE_REGIONS
from .regions import FacialFeatures, FeatureRegion

logger = logging.getLogger(__name__)

# Source boxes are grown by this factor so copies include some surrounding skin
REGION_EXPANSION = 1.4


class DistortionStrategy(ABC):
    """
    Base class for all effects.

    Subclasses set ``name`` and implement apply(). Variant names and style
    intensity defaults come from the shared tables in facecamo.config.
    """

    name: str = ""

    @property
    def variants(self) -> Tuple[str, ...]:
        return STYLE_VARIANTS.get(self.name, ())

    @property
    def default_style_intensity(self) -> Optional[float]:
        intensity_range = STYLE_INTENSITY_RANGES.get(self.name)
        return intensity_range[2] if intensity_range else None

    def resolve_variant(self, style: EffectStyle) -> Optional[str]:
        """
        Return the style's variant, or the first declared variant if the
        style names an unknown one. None for effects without variants.
        """
        if not self.variants:
            return None
        if style.variant in self.variants:
            return style.variant
        if style.variant is not None:
            logger.debug(
                "Unknown %s variant %r, using %r", self.name, style.variant, self.variants[0]
            )
        return self.variants[0]

    def style_intensity(self, style: EffectStyle) -> float:
        if style.intensity is not None:
            return float(style.intensity)
        default = self.default_style_intensity
        return default if default is not None else 0.0

    @abstractmethod
    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        """
        Draw this effect for one face.

        Args:
            canvas: Canvas over the live output buffer
            snapshot: Read-only copy of the frame taken before any drawing
            features: Regions of one (smoothed) detection
            params: Current distortion parameters
            style: Style entry for this effect
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


def usable_regions(features: FacialFeatures) -> Iterator[FeatureRegion]:
    """
    Yield the eye, nose and mouth regions in drawing order, skipping any
    with a zero-size box.
    """
    for name in FEATURE_REGIONS:
        region = features[name]
        if region.is_degenerate:
            logger.debug("Skipping degenerate region %s", name)
            continue
        yield region
