import pytest

from ticqr.config import DetectionConfig
from ticqr.exceptions import CalibrationError
from ticqr.models import Calibration, DetectionThresholds, Point
from ticqr.models.calibration import round_half_up, round_odd


def test_box_size_from_point_spacing():
    assert Calibration(point_spacing=30).box_size == pytest.approx(14.0)
    assert Calibration(point_spacing=600 / 7).box_size == pytest.approx(40.0)


def test_non_positive_spacing_is_rejected():
    with pytest.raises(CalibrationError):
        Calibration(point_spacing=0).box_size


def test_thresholds_scale_with_box_size():
    t = DetectionThresholds.from_box_size(40)

    assert t.min_outer_area == 1600
    assert t.max_outer_area == 2916
    assert t.min_inner_area == 400
    assert t.max_inner_area == t.max_outer_area
    assert t.blur_size == 9
    assert t.blur_sigma == pytest.approx(3.0)
    assert t.threshold_block_size == 119
    assert t.threshold_c == 4
    assert t.max_box_distance == 30
    assert t.max_fiducial_distance == 16
    assert t.max_fiducial_distance_squared == 256


def test_blur_matches_typical_phone_capture():
    t = DetectionThresholds.from_box_size(36)

    assert t.blur_size == 9
    assert t.blur_sigma == pytest.approx(3.0)


def test_window_sizes_stay_odd_for_small_boxes():
    t = DetectionThresholds.from_box_size(4)

    assert t.blur_size == 3
    assert t.threshold_block_size % 2 == 1


def test_thresholds_follow_config(monkeypatch):
    monkeypatch.setenv("TICQR_THRESHOLD_C", "7")

    assert DetectionThresholds.from_box_size(40, DetectionConfig()).threshold_c == 7


@pytest.mark.parametrize("box_size", [0, -3, None])
def test_invalid_box_size(box_size):
    with pytest.raises(CalibrationError):
        DetectionThresholds.from_box_size(box_size)


def test_rounding_goes_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(2.49) == 2
    assert round_odd(10) == 9
    assert round_odd(4) == 3
    assert round_odd(9) == 9
    assert round_odd(1) == 3


def test_fiducial_pairs_are_zipped():
    calibration = Calibration(
        point_spacing=30,
        id_points=[Point(0, 0), Point(100, 0)],
        alignment_points=[Point(10, 10)],
    )

    pairs = calibration.fiducial_pairs

    assert len(pairs) == 1
    assert pairs[0].points == (Point(0, 0), Point(10, 10))


def test_from_dict():
    calibration = Calibration.from_dict({
        "point_spacing": 45,
        "id_points": [[1, 2], {"x": 3, "y": 4}],
        "alignment_points": [[5, 6], [7, 8]],
        "grid_transform": [[1, 0, 0], [0, 1, 0], [0, 0, 1]],
    })

    assert calibration.box_size == pytest.approx(21.0)
    assert calibration.id_points == [Point(1, 2), Point(3, 4)]
    assert calibration.grid_transform[2][2] == 1


@pytest.mark.parametrize("data", [{}, {"point_spacing": "wide"}, {"point_spacing": 30, "id_points": [[1]]}])
def test_from_dict_rejects_bad_data(data):
    with pytest.raises(CalibrationError):
        Calibration.from_dict(data)
