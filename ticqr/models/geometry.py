"""
Geometry primitives shared by detection and verification.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence, Tuple


@dataclass(frozen=True)
class Point:
    """A 2D point, in logical form units or image pixels depending on use."""
    x: float
    y: float

    def squared_distance_to(self, other: "Point") -> float:
        dx = self.x - other.x
        dy = self.y - other.y
        return dx * dx + dy * dy

    def distance_to(self, other: "Point") -> float:
        return math.sqrt(self.squared_distance_to(other))

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def to_pixel(self) -> Tuple[int, int]:
        """Integer pixel coordinate containing the point (-0.5 lies in column -1)."""
        return (math.floor(self.x), math.floor(self.y))

    @classmethod
    def from_any(cls, value: Any) -> "Point":
        """Create a Point from a Point, an (x, y) pair or an {"x", "y"} mapping."""
        if isinstance(value, Point):
            return value
        if isinstance(value, dict):
            return cls(float(value["x"]), float(value["y"]))
        x, y = value
        return cls(float(x), float(y))


@dataclass(frozen=True)
class Quad:
    """
    A simplified four-sided polygon.

    Vertices are kept in the order returned by polygon simplification.
    """
    vertices: Tuple[Point, Point, Point, Point]

    @property
    def centroid(self) -> Point:
        """Arithmetic mean of the four vertices."""
        return Point(
            sum(p.x for p in self.vertices) / 4.0,
            sum(p.y for p in self.vertices) / 4.0,
        )

    @property
    def edge_lengths(self) -> Tuple[float, float, float, float]:
        v = self.vertices
        return tuple(v[i].distance_to(v[(i + 1) % 4]) for i in range(4))

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "Quad":
        if len(points) != 4:
            raise ValueError(f"A quad needs exactly 4 points, got {len(points)}")
        return cls(tuple(Point(float(x), float(y)) for x, y in points))
