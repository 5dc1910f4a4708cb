"""
Utility functions for facecamo.

This module provides helper functions used across the library:
- Deterministic 1D value noise for organic shape jitter
- Kernel size helpers for OpenCV filters
"""

import math
from typing import Tuple

_HASH_MASK = 0xFFFFFFFF


def _lattice_value(i: int, seed: int) -> float:
    """Hash an integer lattice coordinate to a float in [0, 1]."""
    h = (i * 374761393 + seed * 668265263) & _HASH_MASK
    h = ((h ^ (h >> 13)) * 1274126177) & _HASH_MASK
    h ^= h >> 16
    return h / _HASH_MASK


def value_noise(x: float, seed: int = 0) -> float:
    """
    Smooth 1D value noise in [0, 1].

    Random values are placed on integer lattice points and blended with a
    smoothstep curve. The lattice is derived from a fixed integer hash, so
    the same (x, seed) pair always returns the same value, across frames
    and across runs. Nearby x give nearby values.

    Args:
        x: Sample position
        seed: Selects an independent noise sequence

    Returns:
        Noise value in [0, 1]
    """
    i = math.floor(x)
    f = x - i
    t = f * f * (3.0 - 2.0 * f)

    a = _lattice_value(i, seed)
    b = _lattice_value(i + 1, seed)
    return a + (b - a) * t


def odd_kernel_size(radius: float) -> int:
    """
    Convert a blur radius to an odd OpenCV kernel size.

    Returns:
        2 * round(radius) + 1, at least 1
    """
    return max(1, 2 * int(round(radius)) + 1)


def rgb_to_bgr(color: Tuple[int, int, int]) -> Tuple[int, int, int]:
    """Swap an (R, G, B) tuple into OpenCV's (B, G, R) order."""
    r, g, b = color
    return (int(b), int(g), int(r))
