"""
Image processors module.

Contains the processing components for a captured form:
- ContourTree: Contour hierarchy of a binarized image
- ShapeFilter: Classify contours as outer or inner tick box squares
- TickBoxDetector: Find un-ticked (box within a box) tick boxes
- GridMapper: Map logical form positions to image pixels
- BoxVerifier: Decide which expected tick boxes are ticked
"""

from .base import BaseProcessor, ScanContext
from .contour_tree import ContourNode, ContourTree
from .shape_filter import ShapeFilter, BoxSpec, match_outer_box, match_inner_box
from .box_detector import TickBoxDetector, NestedBox, iter_box_pairs, iter_nested_boxes
from .grid_mapper import GridMapper
from .box_verifier import BoxVerifier

__all__ = [
    "BaseProcessor",
    "ScanContext",
    "ContourNode",
    "ContourTree",
    "ShapeFilter",
    "BoxSpec",
    "match_outer_box",
    "match_inner_box",
    "TickBoxDetector",
    "NestedBox",
    "iter_box_pairs",
    "iter_nested_boxes",
    "GridMapper",
    "BoxVerifier",
]
