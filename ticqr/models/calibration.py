"""
Calibration models.

A Calibration is produced by the QR decoding step for each captured image.
DetectionThresholds turns its single scale value (the expected tick box
edge length in pixels) into every size and distance limit used downstream.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, List, Optional

from ..config import DetectionConfig, VerificationConfig
from ..exceptions import CalibrationError
from .geometry import Point
from .items import FiducialPair


# The smallest QR code is 15 modules between control points; boxes are printed 7 modules wide
CONTROL_POINT_MODULES = 15
BOX_MODULES = 7


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def round_odd(value: float, minimum: int = 3) -> int:
    """Round to the nearest integer; even results step down to the odd number below."""
    size = max(minimum, round_half_up(value))
    return size - 1 if size % 2 == 0 else size


@dataclass
class Calibration:
    """
    Geometric calibration of one captured image.

    Attributes:
        point_spacing: Pixel distance between QR code control points
        id_points: Pixel positions of the QR id markers
        alignment_points: Pixel positions of the matching alignment markers
        grid_transform: 3x3 homography from logical form units to pixels
        logical_points: Form control points in logical units, used to fit the
            transform when `grid_transform` is not given
        pixel_points: Where those control points appear in the image
    """

    point_spacing: float
    id_points: List[Point] = field(default_factory=list)
    alignment_points: List[Point] = field(default_factory=list)
    grid_transform: Optional[List[List[float]]] = None
    logical_points: List[Point] = field(default_factory=list)
    pixel_points: List[Point] = field(default_factory=list)

    @property
    def box_size(self) -> float:
        """Expected tick box edge length in pixels."""
        if self.point_spacing <= 0:
            raise CalibrationError(
                "Control point spacing must be positive",
                field_name="point_spacing",
                field_value=self.point_spacing,
            )
        return (self.point_spacing / CONTROL_POINT_MODULES) * BOX_MODULES

    @property
    def fiducial_pairs(self) -> List[FiducialPair]:
        return [
            FiducialPair(id_point, alignment_point)
            for id_point, alignment_point in zip(self.id_points, self.alignment_points)
        ]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Calibration":
        """Create Calibration from a JSON-style dictionary."""
        try:
            return cls(
                point_spacing=float(data["point_spacing"]),
                id_points=[Point.from_any(p) for p in data.get("id_points", [])],
                alignment_points=[Point.from_any(p) for p in data.get("alignment_points", [])],
                grid_transform=data.get("grid_transform"),
                logical_points=[Point.from_any(p) for p in data.get("logical_points", [])],
                pixel_points=[Point.from_any(p) for p in data.get("pixel_points", [])],
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CalibrationError(f"Invalid calibration data: {e}") from e


@dataclass(frozen=True)
class DetectionThresholds:
    """
    Size, distance and image adjustment parameters for one image.

    All values derive from `box_size`; there are no absolute pixel constants.
    """

    box_size: float

    min_outer_area: int
    max_outer_area: int
    min_inner_area: int
    max_inner_area: int

    outer_polygon_similarity: float
    inner_polygon_similarity: float
    max_outer_angle_cos: float
    max_inner_angle_cos: float

    # blur_size and threshold_block_size must be odd
    blur_size: int
    blur_sigma: float
    threshold_block_size: int
    threshold_c: int

    max_box_distance: int
    max_fiducial_distance: int

    @property
    def max_fiducial_distance_squared(self) -> int:
        return self.max_fiducial_distance * self.max_fiducial_distance

    @classmethod
    def from_box_size(
        cls,
        box_size: float,
        detection: Optional[DetectionConfig] = None,
        verification: Optional[VerificationConfig] = None,
    ) -> "DetectionThresholds":
        if box_size is None or box_size <= 0:
            raise CalibrationError("Box size must be positive", field_name="box_size", field_value=box_size)

        detection = detection or DetectionConfig()
        verification = verification or VerificationConfig()

        max_outer_area = round_half_up((box_size * detection.max_outer_factor) ** 2)
        blur_size = round_odd(box_size * detection.blur_factor)

        return cls(
            box_size=box_size,
            min_outer_area=round_half_up((box_size * detection.min_outer_factor) ** 2),
            max_outer_area=max_outer_area,
            min_inner_area=round_half_up((box_size * detection.min_inner_factor) ** 2),
            # an inner box is bounded by its parent, so it shares the outer upper limit
            max_inner_area=max_outer_area,
            outer_polygon_similarity=detection.outer_polygon_similarity,
            inner_polygon_similarity=detection.inner_polygon_similarity,
            max_outer_angle_cos=detection.max_outer_angle_cos,
            max_inner_angle_cos=detection.max_inner_angle_cos,
            blur_size=blur_size,
            blur_sigma=blur_size / 3.0,
            threshold_block_size=round_odd(box_size * detection.threshold_block_factor),
            threshold_c=detection.threshold_c,
            max_box_distance=round_half_up(box_size * verification.box_distance_factor),
            max_fiducial_distance=round_half_up(box_size * verification.fiducial_distance_factor),
        )
