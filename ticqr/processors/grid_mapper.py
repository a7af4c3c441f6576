"""
Logical form grid to image pixel mapping.

The server sends tick box positions in the form's logical units. The QR
decoding step measures where the form lies in the captured image; this
module applies that measurement as a 3x3 homography.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import cv2
import numpy as np

from ..exceptions import CalibrationError
from ..models import Calibration, ExpectedItem, Point


class GridMapper:
    """Map logical form coordinates to pixel coordinates on one image."""

    def __init__(self, matrix: Sequence[Sequence[float]]):
        matrix = np.asarray(matrix, dtype=np.float64)
        if matrix.shape != (3, 3) or not np.all(np.isfinite(matrix)):
            raise CalibrationError("Grid transform must be a finite 3x3 matrix", field_name="grid_transform")
        self.matrix = matrix

    @classmethod
    def from_calibration(cls, calibration: Calibration) -> "GridMapper":
        """Use the measured transform, or fit one to the calibration control points."""
        if calibration.grid_transform is not None:
            return cls(calibration.grid_transform)
        if calibration.logical_points:
            return cls.from_control_points(calibration.logical_points, calibration.pixel_points)
        raise CalibrationError("Calibration has no grid transform", field_name="grid_transform")

    @classmethod
    def from_control_points(
        cls,
        logical_points: Sequence[Point],
        pixel_points: Sequence[Point]
    ) -> "GridMapper":
        """
        Fit the transform from matching logical and pixel control points.

        Four points give an exact perspective transform; more are fitted
        by least squares.
        """
        if len(logical_points) != len(pixel_points) or len(logical_points) < 4:
            raise CalibrationError(
                "At least four matching control points are needed",
                field_name="control_points",
                field_value=len(logical_points),
            )

        src = np.array([p.as_tuple() for p in logical_points], dtype=np.float32)
        dst = np.array([p.as_tuple() for p in pixel_points], dtype=np.float32)

        if len(src) == 4:
            matrix = cv2.getPerspectiveTransform(src, dst)
        else:
            matrix, _ = cv2.findHomography(src, dst, 0)
        if matrix is None:
            raise CalibrationError("Control points do not define a transform", field_name="control_points")
        return cls(matrix)

    def to_pixel(self, point: Point) -> Point:
        """Map one logical point to image pixels."""
        src = np.array([[point.as_tuple()]], dtype=np.float64)
        x, y = cv2.perspectiveTransform(src, self.matrix)[0][0]
        return Point(float(x), float(y))

    def assign_grid_positions(self, items: Iterable[ExpectedItem]) -> None:
        """Set the pixel grid position of every expected item."""
        for item in items:
            item.grid_position = self.to_pixel(item.source_position)
