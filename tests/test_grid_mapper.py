import numpy as np
import pytest

from ticqr.exceptions import CalibrationError
from ticqr.models import Calibration, ExpectedItem, Point
from ticqr.processors.grid_mapper import GridMapper


def test_identity_keeps_points():
    assert GridMapper(np.eye(3)).to_pixel(Point(12.5, 7)) == Point(12.5, 7)


def test_control_points_scale_and_offset():
    logical = [Point(0, 0), Point(100, 0), Point(100, 100), Point(0, 100)]
    pixels = [Point(10 + 2 * p.x, 20 + 2 * p.y) for p in logical]

    mapper = GridMapper.from_control_points(logical, pixels)
    mapped = mapper.to_pixel(Point(50, 25))

    assert mapped.x == pytest.approx(110, abs=1e-3)
    assert mapped.y == pytest.approx(70, abs=1e-3)


def test_control_points_least_squares():
    logical = [Point(0, 0), Point(100, 0), Point(100, 100), Point(0, 100), Point(50, 50)]
    pixels = [Point(p.x + 5, p.y - 3) for p in logical]

    mapped = GridMapper.from_control_points(logical, pixels).to_pixel(Point(20, 80))

    assert mapped.x == pytest.approx(25, abs=1e-3)
    assert mapped.y == pytest.approx(77, abs=1e-3)


def test_too_few_control_points():
    with pytest.raises(CalibrationError):
        GridMapper.from_control_points([Point(0, 0)] * 3, [Point(0, 0)] * 3)


def test_assign_grid_positions():
    items = [ExpectedItem(Point(1, 2), "Milk"), ExpectedItem(Point(3, 4), "Bread")]
    mapper = GridMapper([[2, 0, 5], [0, 2, 5], [0, 0, 1]])

    mapper.assign_grid_positions(items)

    assert items[0].grid_position == Point(7, 9)
    assert items[1].grid_position == Point(11, 13)


@pytest.mark.parametrize("matrix", [np.eye(2), [[1, 0, 0], [0, 1, 0], [0, 0, float("nan")]]])
def test_invalid_matrix(matrix):
    with pytest.raises(CalibrationError):
        GridMapper(matrix)


def test_calibration_without_transform():
    with pytest.raises(CalibrationError):
        GridMapper.from_calibration(Calibration(point_spacing=30))


def test_calibration_control_points_fit_the_transform():
    calibration = Calibration.from_dict({
        "point_spacing": 30,
        "logical_points": [[0, 0], [10, 0], [10, 10], [0, 10]],
        "pixel_points": [[100, 50], [130, 50], [130, 80], [100, 80]],
    })
    items = [ExpectedItem(Point(5, 5), "Milk")]

    GridMapper.from_calibration(calibration).assign_grid_positions(items)

    assert items[0].grid_position.x == pytest.approx(115, abs=1e-3)
    assert items[0].grid_position.y == pytest.approx(65, abs=1e-3)


def test_measured_transform_wins_over_control_points():
    calibration = Calibration(
        point_spacing=30,
        grid_transform=[[1, 0, 3], [0, 1, 4], [0, 0, 1]],
        logical_points=[Point(0, 0)],
        pixel_points=[Point(9, 9)],
    )

    assert GridMapper.from_calibration(calibration).to_pixel(Point(1, 1)) == Point(4, 5)


def test_mismatched_control_points():
    calibration = Calibration(
        point_spacing=30,
        logical_points=[Point(0, 0), Point(1, 0), Point(1, 1), Point(0, 1)],
        pixel_points=[Point(0, 0)],
    )

    with pytest.raises(CalibrationError):
        GridMapper.from_calibration(calibration)
