"""
Tick box item models.

Represents the checkbox items declared by the server for a form page, the
candidate boxes found on a captured image, and the verified outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, List, Any

from .geometry import Point


@dataclass
class ExpectedItem:
    """
    One checkbox declared by the server for a form page.

    Every item starts out assumed ticked and not yet found on the image.
    Only the verifier changes `ticked` and `found_on_image`.
    """

    source_position: Point  # logical form units, as sent by the server
    description: str = ""
    quantity: int = 1

    grid_position: Optional[Point] = None  # image pixels, set from calibration
    ticked: bool = True
    found_on_image: bool = False

    def reset(self) -> None:
        """Return to the initial "assumed ticked" state."""
        self.ticked = True
        self.found_on_image = False


@dataclass(frozen=True)
class CandidateMark:
    """Centre of an un-ticked (box within a box) tick box found on the image."""
    centroid: Point


@dataclass(frozen=True)
class FiducialPair:
    """Paired id and alignment marker positions of one QR code, in pixels."""
    id_point: Point
    alignment_point: Point

    @property
    def points(self) -> tuple[Point, Point]:
        return (self.id_point, self.alignment_point)


@dataclass
class ItemFeed:
    """Expected-item list for one form page, as returned by the server."""
    status: str = "ok"
    destination: Optional[str] = None
    items: List[ExpectedItem] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass(frozen=True)
class VerifiedItem:
    """An item confirmed as ticked on the captured form."""
    description: str
    quantity: int
    grid_position: Point

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "quantity": self.quantity,
            "x": self.grid_position.x,
            "y": self.grid_position.y,
        }


@dataclass
class VerificationResult:
    """Outcome of one verification pass."""

    items: List[VerifiedItem] = field(default_factory=list)

    # Candidate accounting
    candidates_matched: int = 0
    candidates_excluded: int = 0  # too close to a QR code marker
    candidates_unmatched: int = 0

    # Items un-ticked because their position was never photographed
    items_outside_image: int = 0

    @property
    def any_ticked(self) -> bool:
        return bool(self.items)

    def to_dict(self) -> dict[str, Any]:
        return {
            "any_ticked": self.any_ticked,
            "items": [item.to_dict() for item in self.items],
            "candidates_matched": self.candidates_matched,
            "candidates_excluded": self.candidates_excluded,
            "candidates_unmatched": self.candidates_unmatched,
            "items_outside_image": self.items_outside_image,
        }
