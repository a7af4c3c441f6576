"""
Tick box verifier.

Reconciles the un-ticked boxes found on the image with the tick boxes the
server expects on the form. Every expected box starts out assumed ticked;
it is un-ticked when an un-ticked box is found at its position, or when its
position lies outside the photographed area.
"""

from __future__ import annotations

from typing import Callable, Iterable, Optional, Sequence

from ..exceptions import CalibrationError
from ..logger import get_logger
from ..models import (
    CandidateMark,
    DetectionThresholds,
    ExpectedItem,
    FiducialPair,
    Point,
    VerificationResult,
    VerifiedItem,
)


TransparencySampler = Callable[[int, int], bool]


class BoxVerifier:
    """
    Two-pass matching of detected boxes against expected items.

    Pass 1 assigns each detected box to the nearest unclaimed expected item
    within `max_box_distance`, ignoring boxes close to a QR code marker.
    Assignment is greedy in detection order, not a global optimum.

    Pass 2 un-ticks items whose position was never photographed.
    """

    name = "BoxVerifier"

    def __init__(self, thresholds: DetectionThresholds):
        self.thresholds = thresholds
        self.logger = get_logger(self.name)

    def is_near_fiducial(self, point: Point, fiducial_pairs: Iterable[FiducialPair]) -> bool:
        """Check whether a point is close enough to a QR marker to be part of it."""
        limit = self.thresholds.max_fiducial_distance_squared
        for pair in fiducial_pairs:
            if any(point.squared_distance_to(marker) < limit for marker in pair.points):
                return True
        return False

    def closest_unclaimed(self, point: Point, items: Sequence[ExpectedItem]) -> Optional[ExpectedItem]:
        """Nearest item not yet found on the image, within the box distance limit."""
        max_distance = self.thresholds.max_box_distance
        best: Optional[ExpectedItem] = None
        best_distance = float("inf")
        for item in items:
            if item.found_on_image:
                continue
            distance = point.distance_to(item.grid_position)
            if distance < max_distance and distance < best_distance:
                best = item
                best_distance = distance
        return best

    def verify(
        self,
        items: Sequence[ExpectedItem],
        candidates: Iterable[CandidateMark],
        fiducial_pairs: Sequence[FiducialPair],
        is_transparent_at: TransparencySampler,
    ) -> VerificationResult:
        """
        Decide which expected items are ticked.

        Args:
            items: Expected items, each with a grid position
            candidates: Un-ticked boxes detected on the image
            fiducial_pairs: QR marker positions to ignore detections near
            is_transparent_at: Pixel sampler; raises IndexError (such as
                PixelOutOfRangeError) for coordinates outside the image

        Returns:
            The ticked items
        """
        for item in items:
            if item.grid_position is None:
                raise CalibrationError(
                    f"Item '{item.description}' has no grid position",
                    field_name="grid_position",
                )
            item.reset()

        self.logger.debug(
            f"Searching for boxes at max distance {self.thresholds.max_box_distance} "
            f"(QR distance {self.thresholds.max_fiducial_distance})"
        )

        result = VerificationResult()

        # first pass - match un-ticked boxes on the image with boxes from the server
        for mark in candidates:
            if self.is_near_fiducial(mark.centroid, fiducial_pairs):
                result.candidates_excluded += 1
                continue

            item = self.closest_unclaimed(mark.centroid, items)
            if item is None:
                result.candidates_unmatched += 1
                self.logger.debug(f"No expected box near detected box at {mark.centroid.as_tuple()}")
                continue

            item.found_on_image = True
            item.ticked = False
            result.candidates_matched += 1
            self.logger.debug(f"Matched un-ticked box ({item.description})")

        # second pass - un-tick boxes that are still ticked but lie outside the image
        for item in items:
            if not item.ticked:
                continue

            x, y = item.grid_position.to_pixel()
            try:
                outside = is_transparent_at(x, y)
            except IndexError:  # includes PixelOutOfRangeError
                outside = True

            if outside:
                item.ticked = False
                result.items_outside_image += 1
                self.logger.debug(f"Un-ticking box outside the image ({item.description} at {x},{y})")
                continue

            self.logger.debug(f"Ticked box ({item.description}) found at {x},{y}")
            result.items.append(VerifiedItem(item.description, item.quantity, item.grid_position))

        self.logger.info(
            f"Verified {len(items)} boxes: {len(result.items)} ticked "
            f"(matched={result.candidates_matched}, excluded={result.candidates_excluded}, "
            f"unmatched={result.candidates_unmatched}, outside={result.items_outside_image})"
        )
        return result
