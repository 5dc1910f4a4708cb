"""
Tests for the raster drawing surface.
"""

import numpy as np
import pytest

from facecamo.canvas import Canvas


def blank(width=100, height=80):
    return np.zeros((height, width, 3), dtype=np.uint8)


class TestCanvasState:
    """Test transform and style stacks."""

    def test_rejects_bad_images(self):
        with pytest.raises(ValueError):
            Canvas(np.zeros((10, 10), dtype=np.uint8))
        with pytest.raises(ValueError):
            Canvas(np.zeros((10, 10, 3), dtype=np.float32))

    def test_push_pop_restores_transform(self):
        canvas = Canvas(blank())
        canvas.push()
        canvas.translate(10, 5)
        canvas.rotate(0.3)
        assert canvas.has_transform
        canvas.pop()
        assert not canvas.has_transform

    def test_saved_context_restores_style(self):
        image = blank()
        canvas = Canvas(image)
        canvas.fill((255, 0, 0))
        with canvas.saved():
            canvas.fill((0, 255, 0))
        canvas.rect(10, 10, 20, 20)
        assert tuple(image[20, 20]) == (0, 0, 255)

    def test_pop_without_push_raises(self):
        with pytest.raises(RuntimeError):
            Canvas(blank()).pop()

    def test_transform_points(self):
        canvas = Canvas(blank())
        canvas.translate(10, 20)
        canvas.rotate(np.pi / 2)
        # (1, 0) rotated 90 degrees -> (0, 1), then translated
        assert np.allclose(canvas.transform_points([(1, 0)]), [[10, 21]])


class TestCanvasShapes:
    """Test filled shape rasterization."""

    def test_rect_fills_interior_in_bgr(self):
        image = blank()
        canvas = Canvas(image)
        canvas.fill((255, 0, 0))
        canvas.rect(10, 10, 20, 20)
        assert tuple(image[20, 20]) == (0, 0, 255)
        assert tuple(image[50, 50]) == (0, 0, 0)

    def test_no_fill_draws_nothing(self):
        image = blank()
        canvas = Canvas(image)
        canvas.no_fill()
        canvas.rect(10, 10, 20, 20)
        assert not image.any()

    def test_translated_ellipse(self):
        image = blank()
        canvas = Canvas(image)
        canvas.fill((0, 0, 255))
        canvas.translate(50, 40)
        canvas.ellipse(0, 0, 20, 10)
        assert tuple(image[40, 50]) == (255, 0, 0)
        assert tuple(image[40, 70]) == (0, 0, 0)

    def test_line_requires_stroke(self):
        image = blank()
        canvas = Canvas(image)
        canvas.line(0, 0, 99, 79)
        assert not image.any()

        canvas.stroke((255, 255, 255))
        canvas.line(0, 40, 99, 40)
        assert image[40, 50].any()

    def test_garbage_coordinates_skipped(self):
        image = blank()
        canvas = Canvas(image)
        canvas.rect(np.nan, 0, 10, 10)
        canvas.rect(1e9, 0, 10, 10)
        assert not image.any()


class TestCanvasCopy:
    """Test copying image patches into the canvas."""

    def test_identity_copy_is_exact(self):
        rng = np.random.default_rng(0)
        source = rng.integers(0, 256, size=(80, 100, 3), dtype=np.uint8)
        image = blank()
        canvas = Canvas(image)

        assert canvas.copy(source, 10, 12, 30, 20, 50, 40, 30, 20)
        assert np.array_equal(image[40:60, 50:80], source[12:32, 10:40])
        assert not image[:40].any()

    def test_copy_truncates_coordinates(self):
        source = np.full((80, 100, 3), 200, dtype=np.uint8)
        image = blank()
        Canvas(image).copy(source, 10.9, 10.9, 5.9, 5.9, 20.7, 20.7, 5.9, 5.9)
        assert image[20:25, 20:25].all()
        assert not image[25, 25].any()

    def test_empty_rect_returns_false(self):
        canvas = Canvas(blank())
        source = blank()
        assert not canvas.copy(source, 0, 0, 0, 10, 0, 0, 0, 10)
        assert not canvas.copy(source, 200, 200, 10, 10, 0, 0, 10, 10)

    def test_source_clipped_at_border(self):
        """Only the in-frame part of the source lands, at the matching offset."""
        source = np.full((80, 100, 3), 255, dtype=np.uint8)
        image = blank()
        Canvas(image).copy(source, -5, -5, 10, 10, 30, 30, 10, 10)
        assert image[35:40, 35:40].all()
        assert not image[30:35, 30:35].any()

    def test_destination_clipped(self):
        source = np.full((80, 100, 3), 255, dtype=np.uint8)
        image = blank()
        Canvas(image).copy(source, 0, 0, 20, 20, 90, 70, 20, 20)
        assert image[70:80, 90:100].all()

    def test_read_only_source(self):
        source = np.full((80, 100, 3), 90, dtype=np.uint8)
        source.flags.writeable = False
        image = blank()
        canvas = Canvas(image)
        canvas.rotate(0.2)
        assert canvas.copy(source, 10, 10, 20, 20, 30, 30, 20, 20)
        assert image.any()

    def test_rotated_copy_about_center(self):
        """A half-turn about the patch center maps the patch onto itself, flipped."""
        source = blank()
        source[30:50, 40:60] = 255
        source[30:40, 40:60, 1] = 0  # top half magenta, bottom half white

        image = blank()
        canvas = Canvas(image)
        canvas.translate(50, 40)
        canvas.rotate(np.pi)
        canvas.translate(-50, -40)
        canvas.copy(source, 40, 30, 20, 20, 40, 30, 20, 20)

        # Interior pixels away from the resampled edges
        assert tuple(image[45, 50]) == (255, 0, 255)
        assert tuple(image[34, 50]) == (255, 255, 255)

    def test_put_image_clips(self):
        image = blank()
        patch = np.full((10, 10, 3), 7, dtype=np.uint8)
        canvas = Canvas(image)
        canvas.put_image(patch, -5, 75)
        assert (image[75:80, 0:5] == 7).all()
        canvas.put_image(patch, 500, 500)
