"""
Square shape classification for traced contours.

A contour is accepted as a tick box side when it:
1. Has an area inside the expected window
2. Simplifies to exactly four vertices
3. Has corners close enough to right angles
4. (Outer boxes only) Has edges of similar length
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Optional, Sequence

import cv2
import numpy as np

from ..models import DetectionThresholds, Point, Quad


@dataclass(frozen=True)
class BoxSpec:
    """Acceptance limits for one kind of box (outer or inner)."""
    kind: str
    min_area: float
    max_area: float
    polygon_similarity: float
    max_angle_cos: float
    check_edges: bool = False


def corner_cosine(left: Point, corner: Point, right: Point) -> float:
    """
    Absolute cosine of the angle at `corner` between its two neighbours.

    0 is a right angle, 1 a straight or folded line. Zero-length edges
    give infinity so the shape is always rejected.
    """
    dx1, dy1 = left.x - corner.x, left.y - corner.y
    dx2, dy2 = right.x - corner.x, right.y - corner.y
    lengths = np.hypot(dx1, dy1) * np.hypot(dx2, dy2)
    if lengths == 0:
        return float("inf")
    return abs((dx1 * dx2 + dy1 * dy2) / lengths)


def max_corner_cosine(vertices: Sequence[Point]) -> float:
    """Largest corner cosine over all vertices of a closed polygon."""
    n = len(vertices)
    return max(
        corner_cosine(vertices[j], vertices[(j + 1) % n], vertices[(j + 2) % n])
        for j in range(n)
    )


def edges_are_similar(quad: Quad) -> bool:
    """True when the longest edge is at most twice the shortest."""
    lengths = quad.edge_lengths
    shortest, longest = min(lengths), max(lengths)
    return longest - shortest <= shortest


class ShapeFilter:
    """
    Classify contours as outer or inner tick box squares.

    Rejections are never errors; they are counted per reason in
    `self.rejections` for debugging.
    """

    def __init__(self, thresholds: DetectionThresholds):
        self.outer = BoxSpec(
            kind="outer",
            min_area=thresholds.min_outer_area,
            max_area=thresholds.max_outer_area,
            polygon_similarity=thresholds.outer_polygon_similarity,
            max_angle_cos=thresholds.max_outer_angle_cos,
            check_edges=True,
        )
        self.inner = BoxSpec(
            kind="inner",
            min_area=thresholds.min_inner_area,
            max_area=thresholds.max_inner_area,
            polygon_similarity=thresholds.inner_polygon_similarity,
            max_angle_cos=thresholds.max_inner_angle_cos,
        )
        self.rejections: Counter = Counter()

    def match_outer(self, contour: np.ndarray) -> Optional[Quad]:
        return self.match(contour, self.outer)

    def match_inner(self, contour: np.ndarray) -> Optional[Quad]:
        return self.match(contour, self.inner)

    def match(self, contour: np.ndarray, spec: BoxSpec) -> Optional[Quad]:
        """
        Simplify a contour to a square, if it is one.

        Args:
            contour: Contour points (N x 1 x 2 or N x 2)
            spec: Acceptance limits

        Returns:
            The simplified four-point polygon, or None if rejected
        """
        points = np.asarray(contour, dtype=np.float32).reshape(-1, 1, 2)

        # discard noise and oversized areas as early as possible
        area = abs(cv2.contourArea(points))
        if area < spec.min_area:
            self.rejections[f"{spec.kind}_too_small"] += 1
            return None
        if area > spec.max_area:
            self.rejections[f"{spec.kind}_too_big"] += 1
            return None

        epsilon = spec.polygon_similarity * cv2.arcLength(points, True)
        approx = cv2.approxPolyDP(points, epsilon, True)
        if len(approx) != 4:
            self.rejections[f"{spec.kind}_not_4_points"] += 1
            return None

        quad = Quad.from_points(approx.reshape(-1, 2).tolist())

        if max_corner_cosine(quad.vertices) > spec.max_angle_cos:
            self.rejections[f"{spec.kind}_angles"] += 1
            return None

        if spec.check_edges and not edges_are_similar(quad):
            self.rejections[f"{spec.kind}_edges"] += 1
            return None

        return quad


def match_outer_box(contour: np.ndarray, thresholds: DetectionThresholds) -> Optional[Quad]:
    """Check a single contour against the outer box limits."""
    return ShapeFilter(thresholds).match_outer(contour)


def match_inner_box(contour: np.ndarray, thresholds: DetectionThresholds) -> Optional[Quad]:
    """Check a single contour against the inner box limits."""
    return ShapeFilter(thresholds).match_inner(contour)
