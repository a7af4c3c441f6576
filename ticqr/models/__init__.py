"""
Data models for the tick box scanner.

These models represent the core data structures and are designed
to be easily serializable to JSON.
"""

from .geometry import Point, Quad
from .items import (
    ExpectedItem,
    CandidateMark,
    FiducialPair,
    ItemFeed,
    VerifiedItem,
    VerificationResult,
)
from .calibration import Calibration, DetectionThresholds

__all__ = [
    # Geometry
    "Point",
    "Quad",

    # Item models
    "ExpectedItem",
    "CandidateMark",
    "FiducialPair",
    "ItemFeed",
    "VerifiedItem",
    "VerificationResult",

    # Calibration
    "Calibration",
    "DetectionThresholds",
]
