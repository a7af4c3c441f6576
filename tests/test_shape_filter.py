import math

import numpy as np
import pytest

from ticqr.models import DetectionThresholds, Point
from ticqr.processors.shape_filter import (
    ShapeFilter,
    corner_cosine,
    match_inner_box,
    match_outer_box,
)

BOX_SIZE = 40


def contour(points):
    return np.array(points, dtype=np.int32).reshape(-1, 1, 2)


def square(side, x=0, y=0):
    return contour([(x, y), (x + side, y), (x + side, y + side), (x, y + side)])


@pytest.fixture
def thresholds():
    return DetectionThresholds.from_box_size(BOX_SIZE)


def test_outer_square_accepted_with_centroid(thresholds):
    quad = match_outer_box(square(42, 10, 20), thresholds)

    assert quad is not None
    assert len(quad.vertices) == 4
    assert quad.centroid.x == pytest.approx(31)
    assert quad.centroid.y == pytest.approx(41)


def test_perturbed_vertex_rejected_as_outer(thresholds):
    # area (2079) sits inside the outer window; only the corner angle is wrong
    skewed = contour([(0, 0), (42, 0), (57, 42), (0, 42)])
    shape_filter = ShapeFilter(thresholds)

    assert shape_filter.match_outer(skewed) is None
    assert shape_filter.rejections["outer_angles"] == 1


def test_inner_angle_tolerance_is_looser(thresholds):
    skewed = contour([(0, 0), (42, 0), (57, 42), (0, 42)])

    assert match_inner_box(skewed, thresholds) is not None


def test_outer_area_window(thresholds):
    shape_filter = ShapeFilter(thresholds)

    assert shape_filter.match_outer(square(30)) is None
    assert shape_filter.match_outer(square(60)) is None
    assert shape_filter.rejections["outer_too_small"] == 1
    assert shape_filter.rejections["outer_too_big"] == 1


def test_small_square_is_valid_inner(thresholds):
    assert match_inner_box(square(22), thresholds) is not None
    assert match_inner_box(square(15), thresholds) is None


def test_triangle_rejected(thresholds):
    shape_filter = ShapeFilter(thresholds)

    assert shape_filter.match_outer(contour([(0, 0), (60, 0), (0, 60)])) is None
    assert shape_filter.rejections["outer_not_4_points"] == 1


def test_elongated_rectangle_rejected_only_as_outer(thresholds):
    rectangle = contour([(0, 0), (70, 0), (70, 25), (0, 25)])
    shape_filter = ShapeFilter(thresholds)

    assert shape_filter.match_outer(rectangle) is None
    assert shape_filter.rejections["outer_edges"] == 1
    assert shape_filter.match_inner(rectangle) is not None


def test_corner_cosine():
    assert corner_cosine(Point(0, 10), Point(0, 0), Point(10, 0)) == pytest.approx(0.0)
    assert corner_cosine(Point(10, 10), Point(0, 0), Point(10, 0)) == pytest.approx(math.sqrt(0.5))
    assert corner_cosine(Point(0, 0), Point(0, 0), Point(10, 0)) == float("inf")
