"""
2D raster drawing surface over an OpenCV frame.

This module provides the Canvas class which draws filled vector shapes and
resampled image patches directly into a numpy frame buffer. It keeps a
transform stack (translate/rotate) and fill/stroke state, with push()/pop()
to save and restore both, so effects can describe shapes relative to a
facial feature's centroid.

Frames are uint8 BGR arrays of shape (height, width, 3), the layout OpenCV
uses. Colors passed to the canvas are (R, G, B) and converted internally.
Shapes are rasterized with anti-aliased edges at sub-pixel precision.
"""

import logging
import cv2
import numpy as np
from contextlib import contextmanager
from typing import Iterator, List, Optional, Sequence, Tuple
from numpy.typing import NDArray

from .utils import rgb_to_bgr

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

# Fixed-point precision for cv2 polygon rasterization
_SHIFT_BITS = 4
_SHIFT_SCALE = 1 << _SHIFT_BITS

# Coordinates beyond this are treated as garbage and not drawn
_MAX_COORDINATE = 1e6


class Canvas:
    """
    Draw shapes and image patches into a frame buffer.

    All drawing writes into ``image`` in place. Shape coordinates are
    transformed by the current matrix, built up with translate() and
    rotate() and saved/restored with push()/pop().

    Example:
        canvas = Canvas(frame)
        with canvas.saved():
            canvas.translate(cx, cy)
            canvas.rotate(np.pi / 4)
            canvas.fill((255, 0, 0))
            canvas.rect(-10, -10, 20, 20)
    """

    def __init__(self, image: NDArray[np.uint8], ellipse_segments: int = 48):
        """
        Initialize Canvas.

        Args:
            image: Output buffer, shape (height, width, 3), dtype uint8
            ellipse_segments: Number of polygon segments per ellipse
        """
        if image.ndim != 3 or image.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {image.shape}")
        if image.dtype != np.uint8:
            raise ValueError(f"Expected uint8 image, got {image.dtype}")

        self.image = image
        self.height, self.width = image.shape[:2]

        self._matrix = np.eye(3)
        self._fill: Optional[Color] = (255, 255, 255)
        self._stroke: Optional[Color] = None
        self._stroke_weight = 1
        self._stack: List[tuple] = []

        angles = np.linspace(0.0, 2.0 * np.pi, ellipse_segments, endpoint=False)
        self._unit_circle = np.stack([np.cos(angles), np.sin(angles)], axis=1)

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def push(self) -> None:
        """Save the current transform and style."""
        self._stack.append(
            (self._matrix.copy(), self._fill, self._stroke, self._stroke_weight)
        )

    def pop(self) -> None:
        """Restore the transform and style saved by the matching push()."""
        if not self._stack:
            raise RuntimeError("Canvas.pop() called without a matching push()")
        self._matrix, self._fill, self._stroke, self._stroke_weight = self._stack.pop()

    @contextmanager
    def saved(self) -> Iterator["Canvas"]:
        """Context manager wrapping push()/pop()."""
        self.push()
        try:
            yield self
        finally:
            self.pop()

    def translate(self, dx: float, dy: float) -> None:
        self._matrix = self._matrix @ np.array([
            [1.0, 0.0, dx],
            [0.0, 1.0, dy],
            [0.0, 0.0, 1.0],
        ])

    def rotate(self, angle: float) -> None:
        """Rotate subsequent drawing by angle radians (clockwise on screen, y down)."""
        c, s = np.cos(angle), np.sin(angle)
        self._matrix = self._matrix @ np.array([
            [c, -s, 0.0],
            [s, c, 0.0],
            [0.0, 0.0, 1.0],
        ])

    @property
    def matrix(self) -> NDArray[np.float64]:
        return self._matrix.copy()

    @property
    def has_transform(self) -> bool:
        return not np.allclose(self._matrix, np.eye(3))

    def fill(self, color: Color) -> None:
        self._fill = rgb_to_bgr(color)

    def no_fill(self) -> None:
        self._fill = None

    def stroke(self, color: Color, weight: int = 1) -> None:
        self._stroke = rgb_to_bgr(color)
        self._stroke_weight = max(1, int(weight))

    def no_stroke(self) -> None:
        self._stroke = None

    # -------------------------------------------------------------------------
    # Shapes
    # -------------------------------------------------------------------------

    def transform_points(self, points) -> NDArray[np.float64]:
        """Map points, shape (N, 2), through the current transform."""
        pts = np.asarray(points, dtype=np.float64).reshape(-1, 2)
        return pts @ self._matrix[:2, :2].T + self._matrix[:2, 2]

    def _to_fixed(self, pts: NDArray[np.float64]) -> Optional[NDArray[np.int32]]:
        if not np.all(np.isfinite(pts)) or np.abs(pts).max() > _MAX_COORDINATE:
            logger.debug("Skipping shape with out-of-range coordinates")
            return None
        return np.round(pts * _SHIFT_SCALE).astype(np.int32).reshape(-1, 1, 2)

    def polygon(self, points: Sequence[Tuple[float, float]]) -> None:
        """Draw a closed polygon with the current fill and stroke."""
        pts = self.transform_points(points)
        if len(pts) < 3:
            return

        fixed = self._to_fixed(pts)
        if fixed is None:
            return

        if self._fill is not None:
            cv2.fillPoly(
                self.image, [fixed], self._fill,
                lineType=cv2.LINE_AA, shift=_SHIFT_BITS
            )
        if self._stroke is not None:
            cv2.polylines(
                self.image, [fixed], True, self._stroke,
                thickness=self._stroke_weight, lineType=cv2.LINE_AA, shift=_SHIFT_BITS
            )

    def rect(self, x: float, y: float, w: float, h: float) -> None:
        self.polygon([(x, y), (x + w, y), (x + w, y + h), (x, y + h)])

    def triangle(self, x1, y1, x2, y2, x3, y3) -> None:
        self.polygon([(x1, y1), (x2, y2), (x3, y3)])

    def quad(self, x1, y1, x2, y2, x3, y3, x4, y4) -> None:
        self.polygon([(x1, y1), (x2, y2), (x3, y3), (x4, y4)])

    def ellipse(self, cx: float, cy: float, w: float, h: float) -> None:
        """Draw an ellipse centred at (cx, cy) with diameters w and h."""
        pts = self._unit_circle * np.array([w / 2.0, h / 2.0]) + np.array([cx, cy])
        self.polygon(pts)

    def line(self, x1: float, y1: float, x2: float, y2: float) -> None:
        """Draw a line segment with the current stroke (no-op without a stroke)."""
        if self._stroke is None:
            return

        fixed = self._to_fixed(self.transform_points([(x1, y1), (x2, y2)]))
        if fixed is None:
            return

        p1 = (int(fixed[0, 0, 0]), int(fixed[0, 0, 1]))
        p2 = (int(fixed[1, 0, 0]), int(fixed[1, 0, 1]))
        cv2.line(
            self.image, p1, p2, self._stroke,
            thickness=self._stroke_weight, lineType=cv2.LINE_AA, shift=_SHIFT_BITS
        )

    # -------------------------------------------------------------------------
    # Image patches
    # -------------------------------------------------------------------------

    def put_image(self, patch: NDArray[np.uint8], x: int, y: int) -> None:
        """
        Write a patch with its top-left corner at (x, y).

        Uses canvas pixel coordinates and ignores the current transform.
        Parts of the patch outside the canvas are clipped.
        """
        ph, pw = patch.shape[:2]
        x, y = int(x), int(y)

        x0, y0 = max(x, 0), max(y, 0)
        x1, y1 = min(x + pw, self.width), min(y + ph, self.height)
        if x1 <= x0 or y1 <= y0:
            return

        self.image[y0:y1, x0:x1] = patch[y0 - y:y1 - y, x0 - x:x1 - x]

    def copy(
        self,
        source: NDArray[np.uint8],
        sx: float, sy: float, sw: float, sh: float,
        dx: float, dy: float, dw: float, dh: float
    ) -> bool:
        """
        Copy a rectangle of ``source`` into a destination rectangle.

        All coordinates are truncated to integers. The source rectangle is
        clipped to the source image; the destination is resampled to
        (dw, dh) and placed through the current transform, so a rotated
        canvas produces a rotated copy.

        Args:
            source: Image to read from (typically the frame snapshot)
            sx, sy, sw, sh: Source rectangle
            dx, dy, dw, dh: Destination rectangle (before transform)

        Returns:
            True if anything was drawn, False for empty rectangles
        """
        sx, sy, sw, sh = int(sx), int(sy), int(sw), int(sh)
        dx, dy, dw, dh = int(dx), int(dy), int(dw), int(dh)

        if sw <= 0 or sh <= 0 or dw <= 0 or dh <= 0:
            return False

        src_h, src_w = source.shape[:2]
        x0, y0 = max(sx, 0), max(sy, 0)
        x1, y1 = min(sx + sw, src_w), min(sy + sh, src_h)
        if x1 <= x0 or y1 <= y0:
            return False

        patch = source[y0:y1, x0:x1]
        scale_x = dw / sw
        scale_y = dh / sh

        # Where the clipped patch lands inside the destination rectangle
        px = dx + (x0 - sx) * scale_x
        py = dy + (y0 - sy) * scale_y

        if not self.has_transform and scale_x == 1.0 and scale_y == 1.0:
            self.put_image(patch, int(px), int(py))
            return True

        placement = np.array([
            [scale_x, 0.0, px],
            [0.0, scale_y, py],
            [0.0, 0.0, 1.0],
        ])
        self._warp_into(patch.copy(), self._matrix @ placement)
        return True

    def _warp_into(self, patch: NDArray[np.uint8], matrix: NDArray[np.float64]) -> None:
        """Affine-warp a patch into the canvas, touching only covered pixels."""
        ph, pw = patch.shape[:2]
        corners = np.array([[0, 0], [pw, 0], [pw, ph], [0, ph]], dtype=np.float64)
        dst = corners @ matrix[:2, :2].T + matrix[:2, 2]

        bx0 = max(int(np.floor(dst[:, 0].min())), 0)
        by0 = max(int(np.floor(dst[:, 1].min())), 0)
        bx1 = min(int(np.ceil(dst[:, 0].max())), self.width)
        by1 = min(int(np.ceil(dst[:, 1].max())), self.height)
        if bx1 <= bx0 or by1 <= by0:
            return

        local = np.array([
            [1.0, 0.0, -bx0],
            [0.0, 1.0, -by0],
            [0.0, 0.0, 1.0],
        ]) @ matrix
        size = (bx1 - bx0, by1 - by0)

        warped = cv2.warpAffine(
            patch, local[:2], size,
            flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT
        )
        coverage = cv2.warpAffine(
            np.full((ph, pw), 255, dtype=np.uint8), local[:2], size,
            flags=cv2.INTER_NEAREST, borderMode=cv2.BORDER_CONSTANT, borderValue=0
        )

        roi = self.image[by0:by1, bx0:bx1]
        covered = coverage > 0
        roi[covered] = warped[covered]
