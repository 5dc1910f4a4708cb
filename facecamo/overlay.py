"""
Procedural overlay effects: dazzle, cvdazzle, juggalo, facepaint.

These effects never sample the frame. They paint flat-colored shapes
anchored at each region's centroid and sized from its bounding box. Shape
sizes are multiples of the region box, so the overlays scale with the face.

Colors are (R, G, B).
"""

import math
import logging
import numpy as np
from typing import Sequence
from numpy.typing import NDArray

from .canvas import Canvas, Color
from .config import DistortionParameters, EffectStyle
from .regions import FacialFeatures, FeatureRegion
from .strategy import DistortionStrategy
from .utils import value_noise

logger = logging.getLogger(__name__)


WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
RED = (255, 0, 0)
BLUE = (0, 0, 255)

DAZZLE_COLORS = (WHITE, BLACK, RED, BLUE)
JUGGALO_COLORS = (BLACK, WHITE, RED)

CVDAZZLE_PRIMARY = WHITE
CVDAZZLE_SECONDARY = BLACK
CVDAZZLE_ACCENT = RED

PAINT_LIGHT = (255, 200, 150)
PAINT_DARK = (200, 150, 100)
SCARF_DARK = (100, 100, 100)
SCARF_LIGHT = (150, 150, 150)

# Noise seeds for per-eye rotation in geometric dazzle
_EYE_ANGLE_SEEDS = {"left_eye": 11, "right_eye": 23}


# =============================================================================
# Asymmetric pattern (shared by dazzle and cvdazzle)
# =============================================================================

def draw_asymmetric_pattern(
    canvas: Canvas,
    features: FacialFeatures,
    colors: Sequence[Color]
) -> None:
    """
    Draw different shapes on each side of the face.

    Args:
        canvas: Canvas to draw on
        features: Regions of one face
        colors: Four colors; eyes use 0 and 1, the nose 2 and 3, the mouth
            0 and 1
    """
    for name, is_left in (("left_eye", True), ("right_eye", False)):
        region = features[name]
        if region.is_degenerate:
            continue
        size = region.box.w * 1.5
        cx, cy = region.center

        canvas.fill(colors[0 if is_left else 1])
        with canvas.saved():
            canvas.translate(cx, cy)
            canvas.rotate(math.pi / 4 if is_left else -math.pi / 4)
            if is_left:
                canvas.triangle(-size / 2, -size / 2, size / 2, -size / 2, 0, size / 2)
            else:
                canvas.rect(-size / 3, -size / 3, size / 2, size / 2)

    nose = features.nose
    if not nose.is_degenerate:
        width = nose.box.w * 1.2
        height = nose.box.h * 1.5
        cx, cy = nose.center
        canvas.fill(colors[2])
        canvas.rect(cx - width / 3, cy - height / 2, width / 2, height)
        canvas.fill(colors[3])
        canvas.triangle(
            cx + width / 6, cy - height / 2,
            cx + width / 2, cy,
            cx + width / 6, cy + height / 2
        )

    mouth = features.mouth
    if not mouth.is_degenerate:
        width = mouth.box.w * 1.5
        height = mouth.box.h * 1.2
        cx, cy = mouth.center
        canvas.fill(colors[0])
        canvas.ellipse(cx - width / 4, cy, width / 3, height / 2)
        canvas.fill(colors[1])
        canvas.rect(cx + width / 6, cy - height / 3, width / 3, height / 2)


# =============================================================================
# Dazzle
# =============================================================================

class DazzleStrategy(DistortionStrategy):
    """High-contrast dazzle camouflage shapes over eyes, nose and mouth."""

    name = "dazzle"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        variant = self.resolve_variant(style)

        with canvas.saved():
            canvas.no_stroke()
            if variant == "asymmetric":
                draw_asymmetric_pattern(canvas, features, DAZZLE_COLORS)
            elif variant == "minimal":
                self._draw_minimal(canvas, features)
            else:
                self._draw_geometric(canvas, features)

    def _draw_geometric(self, canvas: Canvas, features: FacialFeatures) -> None:
        colors = DAZZLE_COLORS

        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            size = region.box.w * 1.5
            angle = value_noise(0.0, seed=_EYE_ANGLE_SEEDS[name]) * math.pi
            cx, cy = region.center

            for i in range(3):
                canvas.fill(colors[i % len(colors)])
                with canvas.saved():
                    canvas.translate(cx, cy)
                    canvas.rotate(angle + i * math.pi / 3)
                    canvas.triangle(-size / 2, -size / 2, size / 2, -size / 2, 0, size / 2)
                    canvas.rect(-size / 3, -size / 3, size / 2, size / 2)

        nose = features.nose
        if not nose.is_degenerate:
            # Vertical stripes
            width = nose.box.w * 1.2
            height = nose.box.h * 1.5
            cx, cy = nose.center
            for i in range(4):
                canvas.fill(colors[i % len(colors)])
                canvas.rect(cx - width / 2 + i * width / 4, cy - height / 2, width / 4, height)

        mouth = features.mouth
        if not mouth.is_degenerate:
            width = mouth.box.w * 1.5
            height = mouth.box.h * 1.2
            cx, cy = mouth.center
            for i in range(3):
                canvas.fill(colors[i % len(colors)])
                with canvas.saved():
                    canvas.translate(cx, cy)
                    canvas.rotate(i * math.pi / 4)
                    canvas.rect(-width / 3, -height / 3, width / 2, height / 2)

    def _draw_minimal(self, canvas: Canvas, features: FacialFeatures) -> None:
        light, dark = WHITE, BLACK

        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            size = region.box.w * 0.8
            cx, cy = region.center
            canvas.fill(light)
            # Four dots around the eye
            for i in range(4):
                angle = i * math.pi / 2
                canvas.ellipse(
                    cx + math.cos(angle) * size / 2,
                    cy + math.sin(angle) * size / 2,
                    size / 4, size / 4
                )

        nose = features.nose
        if not nose.is_degenerate:
            width = nose.box.w * 0.8
            height = nose.box.h * 1.2
            cx, cy = nose.center
            canvas.fill(dark)
            canvas.rect(cx - width / 4, cy - height / 3, width / 2, height / 3)

        mouth = features.mouth
        if not mouth.is_degenerate:
            cx, cy = mouth.center
            canvas.fill(light)
            canvas.ellipse(cx, cy, mouth.box.w * 0.4, mouth.box.h * 0.4)


# =============================================================================
# CV Dazzle
# =============================================================================

class CvDazzleStrategy(DistortionStrategy):
    """Anti-face-recognition patterns: checker meshes and occluding shapes."""

    name = "cvdazzle"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        variant = self.resolve_variant(style)

        with canvas.saved():
            canvas.no_stroke()
            if variant == "asymmetric":
                draw_asymmetric_pattern(
                    canvas, features,
                    (CVDAZZLE_PRIMARY, CVDAZZLE_SECONDARY, CVDAZZLE_ACCENT, CVDAZZLE_SECONDARY)
                )
            elif variant == "occlusion":
                self._draw_occlusion(canvas, features)
            else:
                self._draw_mesh(canvas, features)

    @staticmethod
    def _checker_fill(canvas: Canvas, i: int, j: int) -> bool:
        even = (i + j) % 2 == 0
        canvas.fill(CVDAZZLE_PRIMARY if even else CVDAZZLE_SECONDARY)
        return even

    def _draw_mesh(self, canvas: Canvas, features: FacialFeatures) -> None:
        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            cell = region.box.w * 2 / 4
            cx, cy = region.center

            with canvas.saved():
                canvas.translate(cx, cy)
                for i in range(-2, 3):
                    for j in range(-2, 3):
                        x, y = i * cell, j * cell
                        even = self._checker_fill(canvas, i, j)
                        canvas.rect(x - cell / 2, y - cell / 2, cell, cell)
                        if even:
                            canvas.stroke(CVDAZZLE_ACCENT)
                            canvas.line(x - cell / 2, y - cell / 2, x + cell / 2, y + cell / 2)
                            canvas.no_stroke()

        nose = features.nose
        if not nose.is_degenerate:
            cell = nose.box.w * 2 / 6
            with canvas.saved():
                canvas.translate(*nose.center)
                for i in range(-3, 4):
                    for j in range(-2, 3):
                        self._checker_fill(canvas, i, j)
                        canvas.rect(i * cell - cell / 2, j * cell - cell / 2, cell, cell)

        mouth = features.mouth
        if not mouth.is_degenerate:
            cell = mouth.box.w * 2 / 5
            with canvas.saved():
                canvas.translate(*mouth.center)
                canvas.rotate(math.pi / 4)
                for i in range(-3, 4):
                    for j in range(-2, 3):
                        self._checker_fill(canvas, i, j)
                        canvas.rect(i * cell - cell / 2, j * cell - cell / 2, cell, cell)

    def _draw_occlusion(self, canvas: Canvas, features: FacialFeatures) -> None:
        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            size = region.box.w * 2.5
            with canvas.saved():
                canvas.translate(*region.center)
                canvas.fill(CVDAZZLE_SECONDARY)
                canvas.ellipse(0, 0, size, size * 1.2)
                canvas.fill(CVDAZZLE_PRIMARY)
                canvas.rect(-size / 3, -size / 3, size / 2, size / 2)
                canvas.fill(CVDAZZLE_ACCENT)
                canvas.triangle(size / 4, -size / 4, size / 2, size / 4, size / 4, size / 2)

        nose = features.nose
        if not nose.is_degenerate:
            # Bar across the bridge, split by an accent wedge
            width = nose.box.w * 1.5
            height = nose.box.h * 1.2
            with canvas.saved():
                canvas.translate(*nose.center)
                canvas.fill(CVDAZZLE_SECONDARY)
                canvas.rect(-width / 2, -height / 2, width, height)
                canvas.fill(CVDAZZLE_ACCENT)
                canvas.triangle(-width / 4, -height / 2, width / 4, -height / 2, 0, 0)

        mouth = features.mouth
        if not mouth.is_degenerate:
            width = mouth.box.w * 1.8
            height = mouth.box.h * 1.6
            with canvas.saved():
                canvas.translate(*mouth.center)
                canvas.fill(CVDAZZLE_SECONDARY)
                canvas.ellipse(0, 0, width, height)
                canvas.fill(CVDAZZLE_PRIMARY)
                canvas.rect(-width / 2, -height / 8, width, height / 4)


# =============================================================================
# Juggalo
# =============================================================================

class JuggaloStrategy(DistortionStrategy):
    """Bold black-and-white face paint that breaks up the face outline."""

    name = "juggalo"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        variant = self.resolve_variant(style)
        black, _, red = JUGGALO_COLORS

        with canvas.saved():
            canvas.no_stroke()
            canvas.fill(black)

            eye_scale = 2.5 if variant == "extreme" else 2.0
            for name, is_left in (("left_eye", True), ("right_eye", False)):
                region = features[name]
                if region.is_degenerate:
                    continue
                size = region.box.w * eye_scale
                with canvas.saved():
                    canvas.translate(*region.center)
                    self._draw_eye(canvas, variant, size, is_left, black, red)

            if not features.nose.is_degenerate:
                self._draw_nose(canvas, variant, features.nose, black, red)
            if not features.mouth.is_degenerate:
                self._draw_mouth(canvas, variant, features.mouth, black, red)

    @staticmethod
    def _down_triangle(canvas: Canvas, size: float) -> None:
        canvas.triangle(-size / 2, -size / 2, size / 2, -size / 2, 0, size / 2)

    @staticmethod
    def _up_triangle(canvas: Canvas, size: float) -> None:
        canvas.triangle(-size / 2, size / 2, size / 2, size / 2, 0, -size / 2)

    def _draw_eye(self, canvas, variant, size, is_left, black, red):
        canvas.fill(black)
        if variant == "classic":
            if is_left:
                self._down_triangle(canvas, size)
            else:
                self._up_triangle(canvas, size)
        elif variant == "modern":
            if is_left:
                self._down_triangle(canvas, size)
                canvas.rect(-size / 4, -size / 4, size / 2, size / 2)
            else:
                canvas.ellipse(0, 0, size, size)
                self._up_triangle(canvas, size)
        else:
            if is_left:
                self._down_triangle(canvas, size)
                canvas.rect(-size / 3, -size / 3, size / 2, size / 2)
                canvas.fill(red)
                canvas.ellipse(0, 0, size / 2, size / 2)
            else:
                canvas.ellipse(0, 0, size, size)
                canvas.fill(red)
                self._up_triangle(canvas, size)
                canvas.fill(black)
                canvas.rect(-size / 4, -size / 4, size / 2, size / 2)

    def _draw_nose(self, canvas: Canvas, variant: str, nose: FeatureRegion, black, red) -> None:
        cx, cy = nose.center
        canvas.fill(black)

        if variant == "extreme":
            width = nose.box.w * 2
            height = nose.box.h * 2.5
            canvas.rect(cx - width / 3, cy - height / 2, width / 1.5, height)
        else:
            width = nose.box.w * 1.5
            height = nose.box.h * 2
            canvas.rect(cx - width / 4, cy - height / 2, width / 2, height)

        if variant in ("modern", "extreme"):
            canvas.fill(red)
            canvas.triangle(
                cx - width / 3, cy - height / 2,
                cx + width / 3, cy - height / 2,
                cx, cy
            )
        if variant == "extreme":
            canvas.ellipse(cx, cy + height / 4, width / 2, height / 3)

    def _draw_mouth(self, canvas: Canvas, variant: str, mouth: FeatureRegion, black, red) -> None:
        cx, cy = mouth.center
        canvas.fill(black)

        if variant == "extreme":
            width = mouth.box.w * 2.5
            height = mouth.box.h * 2
            canvas.ellipse(cx, cy, width, height)
            canvas.fill(red)
            canvas.rect(cx - width / 3, cy - height / 3, width / 1.5, height / 1.5)
            canvas.triangle(
                cx - width / 4, cy + height / 4,
                cx + width / 4, cy + height / 4,
                cx, cy - height / 4
            )
            return

        width = mouth.box.w * 2
        height = mouth.box.h * 1.5
        canvas.ellipse(cx, cy, width, height)
        if variant == "modern":
            canvas.fill(red)
            canvas.rect(cx - width / 4, cy - height / 4, width / 2, height / 2)


# =============================================================================
# Face paint
# =============================================================================

def draw_fractal_squares(
    canvas: Canvas,
    x: float,
    y: float,
    size: float,
    depth: int
) -> None:
    """Draw a square at (x, y), then recurse into its four corners at half size."""
    if depth <= 0:
        return

    canvas.fill(PAINT_LIGHT if depth % 2 == 0 else PAINT_DARK)
    canvas.rect(x - size / 2, y - size / 2, size, size)

    half = size / 2
    for dx, dy in ((-half, -half), (half, -half), (-half, half), (half, half)):
        draw_fractal_squares(canvas, x + dx, y + dy, half, depth - 1)


class FacePaintStrategy(DistortionStrategy):
    """Skin-toned cubist paint, scarf-like fabric blocks, or fractal squares."""

    name = "facepaint"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        variant = self.resolve_variant(style)
        draw = {
            "cubist": self._draw_cubist,
            "scarf": self._draw_scarf,
            "fractal": self._draw_fractal,
        }[variant]

        with canvas.saved():
            canvas.no_stroke()
            draw(canvas, features)

    def _draw_cubist(self, canvas: Canvas, features: FacialFeatures) -> None:
        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            size = region.box.w * 2
            with canvas.saved():
                canvas.translate(*region.center)
                canvas.fill(PAINT_LIGHT)
                canvas.rect(-size / 2, -size / 2, size, size)
                canvas.fill(PAINT_DARK)
                canvas.triangle(-size / 2, -size / 2, size / 2, -size / 2, 0, size / 2)
                canvas.fill(SCARF_DARK)
                canvas.ellipse(size / 4, -size / 4, size / 2, size / 2)

        nose = features.nose
        if not nose.is_degenerate:
            width = nose.box.w * 2
            height = nose.box.h * 2
            with canvas.saved():
                canvas.translate(*nose.center)
                canvas.fill(PAINT_LIGHT)
                canvas.rect(-width / 3, -height / 2, width / 1.5, height)
                canvas.fill(PAINT_DARK)
                canvas.triangle(-width / 4, -height / 2, width / 4, -height / 2, 0, 0)
                canvas.triangle(-width / 4, height / 2, width / 4, height / 2, 0, 0)
                canvas.fill(SCARF_DARK)
                canvas.ellipse(0, -height / 4, width / 3, height / 3)
                canvas.ellipse(0, height / 4, width / 3, height / 3)

        mouth = features.mouth
        if not mouth.is_degenerate:
            width = mouth.box.w * 2
            height = mouth.box.h * 1.5
            with canvas.saved():
                canvas.translate(*mouth.center)
                canvas.fill(PAINT_LIGHT)
                canvas.rect(-width / 2, -height / 2, width, height)
                canvas.fill(PAINT_DARK)
                canvas.triangle(-width / 3, -height / 2, width / 3, -height / 2, 0, 0)
                canvas.triangle(-width / 3, height / 2, width / 3, height / 2, 0, 0)
                canvas.fill(SCARF_DARK)
                canvas.ellipse(-width / 4, 0, width / 4, height / 3)
                canvas.ellipse(width / 4, 0, width / 4, height / 3)

    def _draw_scarf(self, canvas: Canvas, features: FacialFeatures) -> None:
        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            size = region.box.w * 2.5
            with canvas.saved():
                canvas.translate(*region.center)
                canvas.fill(SCARF_DARK)
                canvas.rect(-size / 2, -size / 2, size, size)
                canvas.fill(SCARF_LIGHT)
                for i in range(5):
                    canvas.rect(-size / 2 + i * size / 5, -size / 2, size / 10, size)

        nose = features.nose
        if not nose.is_degenerate:
            # Horizontal weave across the bridge
            width = nose.box.w * 2
            height = nose.box.h * 1.5
            with canvas.saved():
                canvas.translate(*nose.center)
                canvas.fill(SCARF_DARK)
                canvas.rect(-width / 2, -height / 2, width, height)
                canvas.fill(SCARF_LIGHT)
                for i in range(4):
                    canvas.rect(-width / 2, -height / 2 + i * height / 4, width, height / 8)

        mouth = features.mouth
        if not mouth.is_degenerate:
            # Scarf wrapped over the lower face
            width = mouth.box.w * 2.5
            height = mouth.box.h * 2.5
            with canvas.saved():
                canvas.translate(*mouth.center)
                canvas.fill(SCARF_DARK)
                canvas.rect(-width / 2, -height / 2, width, height)
                canvas.fill(SCARF_LIGHT)
                for i in range(5):
                    canvas.rect(-width / 2 + i * width / 5, -height / 2, width / 10, height)

    def _draw_fractal(self, canvas: Canvas, features: FacialFeatures) -> None:
        for name in ("left_eye", "right_eye"):
            region = features[name]
            if region.is_degenerate:
                continue
            cx, cy = region.center
            draw_fractal_squares(canvas, cx, cy, region.box.w * 2, 3)

        nose = features.nose
        if not nose.is_degenerate:
            cx, cy = nose.center
            draw_fractal_squares(canvas, cx, cy, max(nose.box.w, nose.box.h) * 1.2, 2)

        mouth = features.mouth
        if not mouth.is_degenerate:
            cx, cy = mouth.center
            draw_fractal_squares(canvas, cx, cy, mouth.box.w * 1.5, 3)
