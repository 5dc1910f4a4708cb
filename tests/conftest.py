"""
Shared fixtures: synthetic faces and frames.

Synthetic faces place each region's points symmetrically about an integer
center, so a region's centroid equals its bounding-box center exactly.
Half-sizes are chosen so that 0.7 * size is never close to an integer,
which keeps pixel truncation of expanded boxes unambiguous.
"""

import numpy as np
import pytest

from facecamo.landmarks import NUM_LANDMARKS, REGION_INDEX_RANGES

# Region layout relative to the face center: (dx, dy, half_w, half_h)
FACE_LAYOUT = {
    "left_eye": (-30, -20, 11, 6),
    "right_eye": (30, -20, 11, 6),
    "nose": (0, 5, 8, 16),
    "mouth": (0, 40, 21, 8),
    "jaw": (0, 20, 60, 45),
}
BROW_OFFSET = (0, -40)


def symmetric_points(cx, cy, half_w, half_h, n):
    """n points symmetric about (cx, cy) spanning exactly the box +/- half size."""
    pairs = [
        ((-1.0, -1.0), (1.0, 1.0)),
        ((1.0, -1.0), (-1.0, 1.0)),
    ]
    points = []
    k = 0
    while len(points) + 2 <= n:
        if k < len(pairs):
            (ax, ay), (bx, by) = pairs[k]
        else:
            t = 0.5 if k % 2 == 0 else 0.25
            ax, ay, bx, by = -t, t, t, -t
        points.append((cx + ax * half_w, cy + ay * half_h))
        points.append((cx + bx * half_w, cy + by * half_h))
        k += 1
    if len(points) < n:
        points.append((cx, cy))
    return points


def build_face(cx, cy):
    detection = np.zeros((NUM_LANDMARKS, 2), dtype=np.float32)
    detection[:] = (cx + BROW_OFFSET[0], cy + BROW_OFFSET[1])
    for name, (dx, dy, hw, hh) in FACE_LAYOUT.items():
        start, stop = REGION_INDEX_RANGES[name]
        detection[start:stop] = symmetric_points(cx + dx, cy + dy, hw, hh, stop - start)
    return detection


@pytest.fixture
def make_face():
    """Factory: make_face(cx, cy) -> (68, 2) float32 detection."""
    return build_face


@pytest.fixture
def noise_frame():
    """Deterministic random 640x480 BGR frame."""
    rng = np.random.default_rng(1234)
    return rng.integers(0, 256, size=(480, 640, 3), dtype=np.uint8)


@pytest.fixture
def gray_frame():
    """Uniform mid-gray 640x480 BGR frame."""
    return np.full((480, 640, 3), 128, dtype=np.uint8)
