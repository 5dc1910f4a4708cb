"""
Tests for the painted overlays (dazzle, juggalo, cvdazzle, facepaint) and
the shaded effects (gan3d, contour).
"""

import numpy as np
import pytest

from facecamo.canvas import Canvas
from facecamo.config import STYLE_VARIANTS
from facecamo.overlay import (
    CVDAZZLE_ACCENT,
    CVDAZZLE_PRIMARY,
    CVDAZZLE_SECONDARY,
    DAZZLE_COLORS,
    draw_asymmetric_pattern,
)
from facecamo.regions import extract_features
from facecamo.shading import BLOB_POINTS, blob_points
from facecamo.utils import odd_kernel_size, rgb_to_bgr, value_noise

from test_effects import render

PAINTED = ("dazzle", "juggalo", "cvdazzle", "facepaint", "gan3d", "contour")


class TestDeterminism:
    """Overlays use no per-frame randomness."""

    @pytest.mark.parametrize("effect", PAINTED)
    @pytest.mark.parametrize("index", [0, 1, 2])
    def test_same_input_same_output(self, effect, index, noise_frame, make_face):
        variant = STYLE_VARIANTS[effect][index]
        faces = [make_face(320, 240)]
        first = render(effect, noise_frame, faces, variant=variant)
        second = render(effect, noise_frame, faces, variant=variant)
        assert np.array_equal(first, second)

    def test_value_noise_is_stable(self):
        assert value_noise(0.37, seed=5) == value_noise(0.37, seed=5)
        assert value_noise(0.37, seed=5) != value_noise(0.37, seed=6)

    def test_value_noise_range_and_continuity(self):
        samples = [value_noise(i * 0.01, seed=3) for i in range(500)]
        assert all(0.0 <= s <= 1.0 for s in samples)
        steps = np.abs(np.diff(samples))
        assert steps.max() < 0.05

    def test_blob_points(self):
        points = blob_points(40, 20, seed=2)
        assert len(points) == BLOB_POINTS
        assert points == blob_points(40, 20, seed=2)
        # Radii jitter outward by at most 20%
        for x, y in points:
            assert (x / 20) ** 2 + (y / 10) ** 2 <= 1.2 ** 2 + 1e-9


class TestVariants:
    """Every variant of an effect draws something different."""

    @pytest.mark.parametrize("effect", PAINTED)
    def test_variants_distinct(self, effect, gray_frame, make_face):
        faces = [make_face(320, 240)]
        outputs = [
            render(effect, gray_frame, faces, variant=variant)
            for variant in STYLE_VARIANTS[effect]
        ]
        for i in range(len(outputs)):
            assert not np.array_equal(outputs[i], gray_frame)
            for j in range(i + 1, len(outputs)):
                assert not np.array_equal(outputs[i], outputs[j])

    @pytest.mark.parametrize("effect", ("gan3d", "contour"))
    def test_style_intensity_changes_output(self, effect, gray_frame, make_face):
        faces = [make_face(320, 240)]
        low = render(effect, gray_frame, faces, intensity=0.2)
        high = render(effect, gray_frame, faces, intensity=0.9)
        assert not np.array_equal(low, high)

    def test_overlay_ignores_intensity(self, gray_frame, make_face):
        """Painted overlays are sized from the landmarks alone."""
        from facecamo.config import DistortionParameters
        from facecamo.effects import dispatch

        face = extract_features(make_face(320, 240))
        strategy = dispatch("juggalo")
        outputs = []
        for intensity in (0.0, 2.0):
            params = DistortionParameters(effect_type="juggalo", intensity=intensity)
            output = gray_frame.copy()
            strategy.apply(Canvas(output), gray_frame, face, params, params.style())
            outputs.append(output)
        assert np.array_equal(outputs[0], outputs[1])


class TestAsymmetricPattern:
    """dazzle and cvdazzle share one asymmetric layout with different palettes."""

    def _draw(self, frame, face, colors):
        output = frame.copy()
        draw_asymmetric_pattern(Canvas(output), extract_features(face), colors)
        return output

    def test_dazzle_uses_shared_pattern(self, gray_frame, make_face):
        face = make_face(320, 240)
        expected = self._draw(gray_frame, face, DAZZLE_COLORS)
        assert np.array_equal(render("dazzle", gray_frame, [face], variant="asymmetric"), expected)

    def test_cvdazzle_uses_shared_pattern(self, gray_frame, make_face):
        face = make_face(320, 240)
        palette = (CVDAZZLE_PRIMARY, CVDAZZLE_SECONDARY, CVDAZZLE_ACCENT, CVDAZZLE_SECONDARY)
        expected = self._draw(gray_frame, face, palette)
        assert np.array_equal(render("cvdazzle", gray_frame, [face], variant="asymmetric"), expected)

    def test_sides_differ(self, gray_frame, make_face):
        """The left and right eye get different shapes."""
        output = self._draw(gray_frame, make_face(320, 240), DAZZLE_COLORS)
        left = output[200:240, 270:310]
        right = output[200:240, 330:370]
        assert not np.array_equal(left, right[:, ::-1])

    def test_mouth_drawn_in_palette(self, gray_frame, make_face):
        output = self._draw(gray_frame, make_face(320, 240), DAZZLE_COLORS)
        mouth = output[270:290, 290:350].reshape(-1, 3)
        white = np.all(mouth == rgb_to_bgr(DAZZLE_COLORS[0]), axis=1)
        assert white.any()


class TestHelpers:
    """Test small shared helpers."""

    @pytest.mark.parametrize("radius, expected", [(0, 1), (0.4, 1), (1, 3), (2.6, 7), (20, 41)])
    def test_odd_kernel_size(self, radius, expected):
        assert odd_kernel_size(radius) == expected

    def test_rgb_to_bgr(self):
        assert rgb_to_bgr((255, 128, 0)) == (0, 128, 255)
