"""
Shaded overlay effects: gan3d and contour.

gan3d stacks flat-shaded pseudo-3D solids (cube, pyramid, cylinder, torus
or noise-jittered blobs) over the features, extruded diagonally up and to
the right to fake depth. contour paints makeup-style highlight and shadow
shapes positioned relative to the eye and mouth centroids.

Both effects take a style intensity in [0, 1] from the effect's style.
"""

import math
import logging
import numpy as np
from typing import List, Optional, Tuple
from numpy.typing import NDArray

from .canvas import Canvas
from .config import DistortionParameters, EffectStyle
from .regions import FacialFeatures
from .strategy import DistortionStrategy
from .utils import value_noise

logger = logging.getLogger(__name__)


# gan3d layer colors (front faces), side and top shading
GAN3D_COLORS = ((255, 255, 255), (0, 0, 0), (100, 100, 100), (200, 200, 200))
GAN3D_SIDE = (200, 200, 200)
GAN3D_TOP = (150, 150, 150)
GAN3D_FRONT = (255, 255, 255)

GAN3D_LAYERS = 3
CYLINDER_SEGMENTS = 12
TORUS_SEGMENTS = 24
BLOB_POINTS = 8

CONTOUR_HIGHLIGHT = (255, 240, 220)
CONTOUR_SHADOW = (120, 80, 60)
CONTOUR_BLUSH = (220, 140, 120)

DRAMATIC_BOOST = 1.5


# =============================================================================
# Pseudo-3D primitives
# =============================================================================
# Drawn around the canvas origin; callers translate to the feature first.

def draw_cube(canvas: Canvas, size: float, depth: float) -> None:
    """Front square in the current fill, plus side and top faces."""
    half = size / 2
    canvas.rect(-half, -half, size, size)

    canvas.fill(GAN3D_SIDE)
    canvas.quad(
        half, -half,
        half + depth, -half - depth,
        half + depth, half - depth,
        half, half
    )

    canvas.fill(GAN3D_TOP)
    canvas.quad(
        -half, -half,
        -half + depth, -half - depth,
        half + depth, -half - depth,
        half, -half
    )


def draw_pyramid(canvas: Canvas, size: float, depth: float) -> None:
    """Square base in the current fill, with four faces meeting above it."""
    half = size / 2
    apex = (0, -half - depth)
    canvas.rect(-half, -half, size, size)

    canvas.fill(GAN3D_SIDE)
    corners = [(-half, -half), (half, -half), (half, half), (-half, half)]
    for i, (x1, y1) in enumerate(corners):
        x2, y2 = corners[(i + 1) % len(corners)]
        canvas.triangle(x1, y1, apex[0], apex[1], x2, y2)


def draw_extruded_ring(
    canvas: Canvas,
    width: float,
    height: float,
    depth: float,
    segments: int
) -> None:
    """
    Elliptical ring extruded by depth: side quads per segment, then a front
    and a back face.

    Used for both the cylinder (nose) and the torus (mouth), which differ
    only in segment count.
    """
    step = 2 * math.pi / segments

    canvas.fill(GAN3D_SIDE)
    for i in range(segments):
        a1, a2 = i * step, (i + 1) * step
        x1, y1 = math.cos(a1) * width / 2, math.sin(a1) * height / 2
        x2, y2 = math.cos(a2) * width / 2, math.sin(a2) * height / 2
        canvas.quad(
            x1, y1,
            x1 + depth, y1 - depth,
            x2 + depth, y2 - depth,
            x2, y2
        )

    canvas.fill(GAN3D_FRONT)
    canvas.ellipse(0, 0, width, height)
    canvas.fill(GAN3D_TOP)
    canvas.ellipse(depth, -depth, width, height)


def blob_points(width: float, height: float, seed: int = 0) -> List[Tuple[float, float]]:
    """
    Points of a noise-jittered ellipse.

    Radii grow by up to 20% following value_noise, so the outline is
    irregular but identical on every call with the same arguments.
    """
    points = []
    for i in range(BLOB_POINTS):
        angle = i / BLOB_POINTS * 2 * math.pi
        jitter = 1 + value_noise(i * 0.1, seed=seed) * 0.2
        points.append((
            math.cos(angle) * width / 2 * jitter,
            math.sin(angle) * height / 2 * jitter,
        ))
    return points


def draw_blob(canvas: Canvas, width: float, height: float, depth: float, seed: int = 0) -> None:
    """Organic blob in the current fill with extruded side quads."""
    points = blob_points(width, height, seed)
    canvas.polygon(points)

    canvas.fill(GAN3D_SIDE)
    for i, (x1, y1) in enumerate(points):
        x2, y2 = points[(i + 1) % len(points)]
        canvas.quad(
            x1, y1,
            x1 + depth, y1 - depth,
            x2 + depth, y2 - depth,
            x2, y2
        )


# =============================================================================
# gan3d
# =============================================================================

class Gan3dStrategy(DistortionStrategy):
    """
    Layered pseudo-3D solids over each feature.

    Three layers are drawn from largest to smallest. Each layer shrinks the
    solid by 20% and its extrusion depth by 30%. The left eye gets a cube
    and the right eye a pyramid, the nose a cylinder, the mouth a torus.
    ``organic`` replaces every solid with a jittered blob and ``hybrid``
    alternates solid and blob per layer.
    """

    name = "gan3d"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        variant = self.resolve_variant(style)
        strength = self.style_intensity(style)
        scale = 1 + strength
        depth = strength * 2

        with canvas.saved():
            canvas.no_stroke()

            for region in (features.left_eye, features.right_eye, features.nose, features.mouth):
                if region.is_degenerate:
                    logger.debug("Skipping degenerate region %s", region.name)
                    continue

                if region.name in ("left_eye", "right_eye"):
                    # Eyes use square solids sized from the box width
                    width = height = region.box.w * scale
                else:
                    width = region.box.w * scale
                    height = region.box.h * scale

                with canvas.saved():
                    canvas.translate(*region.center)
                    for layer in range(GAN3D_LAYERS):
                        layer_w = width * (1 - layer * 0.2)
                        layer_h = height * (1 - layer * 0.2)
                        layer_depth = depth * (1 - layer * 0.3)

                        canvas.fill(GAN3D_COLORS[layer % len(GAN3D_COLORS)])
                        use_blob = variant == "organic" or (variant == "hybrid" and layer % 2 == 1)
                        if use_blob:
                            draw_blob(canvas, layer_w, layer_h, layer_depth)
                        else:
                            self._draw_solid(canvas, region.name, layer_w, layer_h, layer_depth)

    @staticmethod
    def _draw_solid(canvas: Canvas, region_name: str, width: float, height: float, depth: float) -> None:
        if region_name == "left_eye":
            draw_cube(canvas, width, depth)
        elif region_name == "right_eye":
            draw_pyramid(canvas, width, depth)
        elif region_name == "nose":
            draw_extruded_ring(canvas, width, height, depth, CYLINDER_SEGMENTS)
        else:
            draw_extruded_ring(canvas, width, height, depth, TORUS_SEGMENTS)


# =============================================================================
# contour
# =============================================================================

Anchor = Optional[Tuple[float, float]]


def _usable_anchors(features: FacialFeatures) -> Tuple[Anchor, Anchor, Anchor]:
    """Centers of the left eye, right eye and mouth; None for a zero-size region."""
    return tuple(
        None if region.is_degenerate else region.center
        for region in (features.left_eye, features.right_eye, features.mouth)
    )


class ContourStrategy(DistortionStrategy):
    """
    Makeup contouring: cheek hollows, nose, temples, jaw and highlights.

    Shape sizes are in pixels (tuned for 640x480 frames) and scale with the
    style intensity. Positions are offsets from the eye and mouth centroids.
    """

    name = "contour"

    def apply(
        self,
        canvas: Canvas,
        snapshot: NDArray[np.uint8],
        features: FacialFeatures,
        params: DistortionParameters,
        style: EffectStyle
    ) -> None:
        variant = self.resolve_variant(style)
        strength = self.style_intensity(style)

        with canvas.saved():
            canvas.no_stroke()
            if variant == "avantgarde":
                self._draw_abstract(canvas, features, strength)
            else:
                dramatic = variant == "dramatic"
                if dramatic:
                    strength *= DRAMATIC_BOOST
                self._draw_sections(canvas, features, strength)
                if dramatic:
                    self._draw_highlights(canvas, features)

    def _draw_sections(self, canvas: Canvas, features: FacialFeatures, k: float) -> None:
        left, right, mouth = _usable_anchors(features)

        # Cheek hollows
        cheek = 60 * k
        offset = 30 * k
        for eye, side, angle in ((left, -1, math.pi / 4), (right, 1, -math.pi / 4)):
            if eye is None:
                continue
            ex, ey = eye
            canvas.fill(CONTOUR_SHADOW)
            with canvas.saved():
                canvas.translate(ex + side * offset, ey + offset)
                canvas.rotate(angle)
                canvas.ellipse(0, 0, cheek, cheek * 1.5)
            canvas.fill(CONTOUR_BLUSH)
            canvas.ellipse(ex + side * offset / 2, ey + offset, cheek / 2, cheek / 3)

        # Nose bridge and tip
        nose = features.nose
        if not nose.is_degenerate:
            nx, ny = nose.center
            width = nose.box.w * (1 + k)
            height = nose.box.h * (1 + k)
            canvas.fill(CONTOUR_SHADOW)
            canvas.rect(nx - width / 4, ny - height / 2, width / 2, height)
            canvas.fill(CONTOUR_HIGHLIGHT)
            canvas.ellipse(nx, ny + height / 3, width / 3, height / 4)

        # Temples and forehead
        temple = 40 * k
        canvas.fill(CONTOUR_SHADOW)
        for eye, side in ((left, -1), (right, 1)):
            if eye is not None:
                canvas.ellipse(eye[0] + side * 50, eye[1] - 80, temple, temple)
        if left is not None and right is not None:
            canvas.fill(CONTOUR_HIGHLIGHT)
            canvas.ellipse((left[0] + right[0]) / 2, left[1] - 100, 60 * k, 30 * k)

        # Jawline and chin
        if mouth is None:
            return
        mx, my = mouth
        jaw = 50 * k
        canvas.fill(CONTOUR_SHADOW)
        for eye, side in ((left, -1), (right, 1)):
            if eye is not None:
                canvas.ellipse(eye[0] + side * 60, my + 50, jaw, jaw * 1.2)
        canvas.fill(CONTOUR_HIGHLIGHT)
        canvas.ellipse(mx, my + 60, 40 * k, 30 * k)

    def _draw_highlights(self, canvas: Canvas, features: FacialFeatures) -> None:
        left, right, mouth = _usable_anchors(features)

        canvas.fill(CONTOUR_HIGHLIGHT)
        for eye, side in ((left, -1), (right, 1)):
            if eye is None:
                continue
            ex, ey = eye
            # Under-eye and brow bone
            canvas.ellipse(ex, ey + 20, 30, 15)
            canvas.ellipse(ex + side * 15, ey - 30, 20, 10)
        if mouth is not None:
            # Cupid's bow
            canvas.ellipse(mouth[0], mouth[1] - 10, 20, 10)

    def _draw_abstract(self, canvas: Canvas, features: FacialFeatures, k: float) -> None:
        left, right, mouth = _usable_anchors(features)

        # Cheek petals, mirrored on the right
        petal = 50 * k
        for eye, side, angle in ((left, -1, 0.0), (right, 1, math.pi)):
            if eye is None:
                continue
            with canvas.saved():
                canvas.translate(eye[0] + side * 40, eye[1] + 40)
                canvas.rotate(angle)
                self._draw_petals(canvas, petal)

        # Striped nose bridge
        nose = features.nose
        if not nose.is_degenerate:
            width = nose.box.w * (1 + k)
            height = nose.box.h * (1 + k)
            with canvas.saved():
                canvas.translate(*nose.center)
                for i in range(3):
                    canvas.fill(CONTOUR_SHADOW if i % 2 == 0 else CONTOUR_HIGHLIGHT)
                    canvas.rect(-width / 4, -height / 2 + i * height / 3, width / 2, height / 4)

        # Concentric rotated ellipses on the forehead
        if left is not None and right is not None:
            with canvas.saved():
                canvas.translate((left[0] + right[0]) / 2, left[1] - 100)
                for i in range(4):
                    size = 40 + i * 20
                    canvas.fill(CONTOUR_SHADOW if i % 2 == 0 else CONTOUR_HIGHLIGHT)
                    canvas.rotate(math.pi / 8)
                    canvas.ellipse(0, 0, size, size * 0.7)

        # Jaw shards, mirrored on the right
        if mouth is None:
            return
        jaw = 60 * k
        for eye, side, angle in ((left, -1, 0.0), (right, 1, math.pi)):
            if eye is None:
                continue
            with canvas.saved():
                canvas.translate(eye[0] + side * 60, mouth[1] + 50)
                canvas.rotate(angle)
                points = []
                for i in range(BLOB_POINTS):
                    a = i / BLOB_POINTS * 2 * math.pi
                    radius = jaw * (0.5 + value_noise(i * 0.1) * 0.5)
                    points.append((math.cos(a) * radius, math.sin(a) * radius))
                canvas.fill(CONTOUR_HIGHLIGHT)
                canvas.polygon(points)

    @staticmethod
    def _draw_petals(canvas: Canvas, size: float) -> None:
        count = 5
        for i in range(count):
            radius = size * (0.5 + value_noise(i * 0.1) * 0.5)
            canvas.fill(CONTOUR_SHADOW if i % 2 == 0 else CONTOUR_HIGHLIGHT)
            with canvas.saved():
                canvas.rotate(i * 2 * math.pi / count)
                canvas.ellipse(radius, 0, size / 3, size / 2)
