import numpy as np
import pytest

from ticqr.exceptions import CalibrationError, PixelOutOfRangeError
from ticqr.models import CandidateMark, DetectionThresholds, ExpectedItem, FiducialPair, Point
from ticqr.processors.box_verifier import BoxVerifier
from ticqr.utils.image_utils import ImagePixelSampler


def item(x, y, description="item", quantity=1):
    return ExpectedItem(
        source_position=Point(x, y),
        description=description,
        quantity=quantity,
        grid_position=Point(x, y),
    )


def mark(x, y):
    return CandidateMark(Point(x, y))


def never_transparent(x, y):
    return False


@pytest.fixture
def verifier():
    # max box distance 30, max fiducial distance 16
    return BoxVerifier(DetectionThresholds.from_box_size(40))


def test_all_ticked_when_no_box_is_close(verifier):
    items = [item(100, 100, "Milk", 2), item(200, 100, "Bread")]

    result = verifier.verify(items, [mark(400, 400)], [], never_transparent)

    assert [i.description for i in result.items] == ["Milk", "Bread"]
    assert result.items[0].quantity == 2
    assert result.candidates_unmatched == 1
    assert all(i.ticked for i in items)


def test_box_at_item_unticks_it(verifier):
    items = [item(100, 100, "Milk"), item(200, 100, "Bread")]

    result = verifier.verify(items, [mark(102, 99)], [], never_transparent)

    assert [i.description for i in result.items] == ["Bread"]
    assert items[0].found_on_image and not items[0].ticked
    assert result.candidates_matched == 1


def test_no_items_gives_empty_result(verifier):
    result = verifier.verify([], [mark(10, 10)], [], never_transparent)

    assert result.items == []
    assert not result.any_ticked


def test_transparent_position_unticks(verifier):
    image = np.full((50, 50, 4), 255, dtype=np.uint8)
    image[:, 25:, 3] = 0
    items = [item(10, 10, "inside"), item(40, 10, "cropped")]

    result = verifier.verify(items, [], [], ImagePixelSampler(image).is_transparent_at)

    assert [i.description for i in result.items] == ["inside"]
    assert result.items_outside_image == 1


def test_position_outside_image_unticks(verifier):
    sampler = ImagePixelSampler(np.full((50, 50, 3), 255, dtype=np.uint8))
    items = [item(10, 10, "inside"), item(60, 10, "right"), item(-5, 10, "left")]

    result = verifier.verify(items, [], [], sampler.is_transparent_at)

    assert [i.description for i in result.items] == ["inside"]
    assert result.items_outside_image == 2


def test_fractionally_negative_position_is_outside(verifier):
    sampler = ImagePixelSampler(np.full((50, 50, 3), 255, dtype=np.uint8))
    items = [item(-0.6, 10, "just left"), item(10, -0.2, "just above"), item(0.4, 10, "edge")]

    result = verifier.verify(items, [], [], sampler.is_transparent_at)

    assert [i.description for i in result.items] == ["edge"]
    assert result.items_outside_image == 2


def test_pixel_of_point():
    assert Point(-0.6, 3.9).to_pixel() == (-1, 3)
    assert Point(12.0, 0.0).to_pixel() == (12, 0)


def test_sampler_reports_out_of_range():
    sampler = ImagePixelSampler(np.zeros((10, 20, 3), dtype=np.uint8))

    with pytest.raises(PixelOutOfRangeError):
        sampler.is_transparent_at(20, 0)
    with pytest.raises(IndexError):
        sampler.is_transparent_at(0, -1)
    assert sampler.is_transparent_at(19, 9) is False


def test_box_on_qr_marker_is_ignored(verifier):
    items = [item(100, 100, "Milk")]
    fiducials = [FiducialPair(Point(90, 100), Point(300, 300))]

    # 15 pixels from the marker, well within the box distance of the item
    result = verifier.verify(items, [mark(105, 100)], fiducials, never_transparent)

    assert [i.description for i in result.items] == ["Milk"]
    assert result.candidates_excluded == 1


def test_box_exactly_on_qr_marker_is_ignored(verifier):
    items = [item(100, 100, "Milk")]
    fiducials = [FiducialPair(Point(100, 100), Point(300, 300))]

    result = verifier.verify(items, [mark(100, 100)], fiducials, never_transparent)

    assert [i.description for i in result.items] == ["Milk"]
    assert result.candidates_excluded == 1
    assert result.candidates_matched == 0
    assert not items[0].found_on_image


def test_alignment_marker_is_checked_too(verifier):
    items = [item(100, 100, "Milk")]
    fiducials = [FiducialPair(Point(500, 500), Point(100, 110))]

    result = verifier.verify(items, [mark(100, 100)], fiducials, never_transparent)

    assert result.candidates_excluded == 1
    assert items[0].ticked


def test_box_beyond_marker_limit_still_counts(verifier):
    items = [item(100, 100, "Milk")]
    fiducials = [FiducialPair(Point(84, 100), Point(300, 300))]

    result = verifier.verify(items, [mark(100, 100)], fiducials, never_transparent)

    assert result.items == []
    assert result.candidates_matched == 1


def test_claimed_item_is_not_taken_again(verifier):
    first, second = item(0, 0, "A"), item(25, 0, "B")

    # the first box is nearest to B; the second box, nearer to B still,
    # falls back to the closest unclaimed item
    result = verifier.verify([first, second], [mark(20, 0), mark(24, 0)], [], never_transparent)

    assert not first.ticked and not second.ticked
    assert result.candidates_matched == 2
    assert result.items == []


def test_box_left_over_when_all_nearby_items_claimed(verifier):
    items = [item(0, 0, "A")]

    result = verifier.verify(items, [mark(1, 0), mark(2, 0)], [], never_transparent)

    assert result.candidates_matched == 1
    assert result.candidates_unmatched == 1


def test_verification_is_repeatable(verifier):
    items = [item(100, 100, "Milk"), item(200, 100, "Bread")]
    candidates = [mark(100, 100)]

    first = verifier.verify(items, candidates, [], never_transparent)
    second = verifier.verify(items, candidates, [], never_transparent)

    assert first.to_dict() == second.to_dict()


def test_item_without_grid_position(verifier):
    with pytest.raises(CalibrationError):
        verifier.verify([ExpectedItem(Point(1, 1))], [], [], never_transparent)


def test_result_to_dict(verifier):
    result = verifier.verify([item(10.5, 20.5, "Milk", 3)], [], [], never_transparent)

    assert result.to_dict()["items"] == [{"description": "Milk", "quantity": 3, "x": 10.5, "y": 20.5}]
    assert result.to_dict()["any_ticked"] is True
