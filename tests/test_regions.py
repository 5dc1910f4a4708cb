"""
Tests for facial region extraction and bounding box geometry.
"""

import numpy as np
import pytest

from facecamo.landmarks import REGION_INDEX_RANGES, REGION_ORDER
from facecamo.regions import (
    BoundingBox,
    compute_bounding_box,
    compute_centroid,
    expand_box,
    extract_features,
    extract_region,
)


class TestBoundingBox:
    """Test box construction and geometry."""

    def test_negative_size_raises(self):
        with pytest.raises(ValueError):
            BoundingBox(0, 0, -1, 5)

    def test_center_and_area(self):
        box = BoundingBox(10, 20, 30, 40)
        assert box.center == (25.0, 40.0)
        assert box.area == 1200

    def test_degenerate(self):
        assert BoundingBox(5, 5, 0, 10).is_degenerate
        assert BoundingBox(5, 5, 10, 0).is_degenerate
        assert not BoundingBox(5, 5, 1, 1).is_degenerate

    def test_compute_from_points(self):
        points = np.array([[3, 7], [10, 2], [5, 9]], dtype=np.float32)
        box = compute_bounding_box(points)
        assert (box.x, box.y, box.w, box.h) == (3, 2, 7, 7)

    def test_single_point_is_zero_size(self):
        box = compute_bounding_box(np.array([[12.5, 4.0]], dtype=np.float32))
        assert (box.x, box.y, box.w, box.h) == (12.5, 4.0, 0.0, 0.0)
        assert box.is_degenerate

    def test_empty_points_raise(self):
        with pytest.raises(ValueError):
            compute_bounding_box(np.zeros((0, 2), dtype=np.float32))
        with pytest.raises(ValueError):
            compute_centroid(np.zeros((0, 2), dtype=np.float32))


class TestExpandBox:
    """Test scaling a box about its own center."""

    @pytest.mark.parametrize("factor", [0.5, 1.0, 1.4, 2.1, 3.0])
    def test_preserves_center(self, factor):
        box = BoundingBox(13, 27, 22, 12)
        expanded = expand_box(box, factor)
        assert np.allclose(expanded.center, box.center)
        assert np.isclose(expanded.w, 22 * factor)
        assert np.isclose(expanded.h, 12 * factor)

    def test_formula(self):
        expanded = expand_box(BoundingBox(10, 10, 20, 10), 1.5)
        assert np.isclose(expanded.x, 5.0)
        assert np.isclose(expanded.y, 7.5)

    def test_method_matches_function(self):
        box = BoundingBox(1, 2, 3, 4)
        assert box.expand(1.4) == expand_box(box, 1.4)

    def test_negative_factor_raises(self):
        with pytest.raises(ValueError):
            expand_box(BoundingBox(0, 0, 10, 10), -1.0)


class TestExtractFeatures:
    """Test slicing detections into named regions."""

    def test_grid_detection(self):
        """Boxes of a grid-laid detection match hand-computed min/max."""
        detection = np.array(
            [[(i % 10) * 10.0, (i // 10) * 5.0] for i in range(68)], dtype=np.float32
        )
        features = extract_features(detection)

        for name in REGION_ORDER:
            start, stop = REGION_INDEX_RANGES[name]
            points = detection[start:stop]
            box = features[name].box
            assert box.x == points[:, 0].min()
            assert box.y == points[:, 1].min()
            assert box.w == points[:, 0].max() - points[:, 0].min()
            assert box.h == points[:, 1].max() - points[:, 1].min()

        # left_eye = indices 36..41: x = 60..90 (36-39), 0..10 (40-41); y = 15, 20
        left = features.left_eye.box
        assert (left.x, left.y, left.w, left.h) == (0.0, 15.0, 90.0, 5.0)

    def test_centroids(self, make_face):
        features = extract_features(make_face(200, 150))
        assert features.left_eye.center == (170.0, 130.0)
        assert features.right_eye.center == (230.0, 130.0)
        assert features.nose.center == (200.0, 155.0)
        assert features.mouth.center == (200.0, 190.0)

    def test_centroid_matches_box_center(self, make_face):
        features = extract_features(make_face(321, 222))
        for region in features:
            assert np.allclose(region.center, region.box.center)

    def test_iteration_order(self, make_face):
        names = [region.name for region in extract_features(make_face(100, 100))]
        assert names == list(REGION_ORDER)

    def test_collapsed_region_is_degenerate(self, make_face):
        """Coincident eye points give a zero-size box, not an error."""
        detection = make_face(200, 200)
        detection[36:42] = (150.0, 180.0)
        region = extract_region(detection, "left_eye")
        assert region.is_degenerate
        assert region.center == (150.0, 180.0)

    def test_unknown_region(self, make_face):
        features = extract_features(make_face(100, 100))
        with pytest.raises(KeyError):
            features["forehead"]
