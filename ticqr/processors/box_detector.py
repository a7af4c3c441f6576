"""
Tick box detector.

Finds *un-ticked* tick boxes on a captured form. Un-ticked boxes are uniform
in appearance, and so easier to detect than ticked ones: they show up as a
box within a box in the contour tree. A tick drawn across a box breaks up
its inner square, so ticked boxes produce no candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Set

import numpy as np

from .base import BaseProcessor, ScanContext
from .contour_tree import ContourTree
from .shape_filter import ShapeFilter
from ..exceptions import DetectionError
from ..models import CandidateMark, DetectionThresholds, Quad
from ..utils.image_utils import binarize, draw_detection_overlay, save_image


@dataclass(frozen=True)
class NestedBox:
    """An accepted outer box together with the inner box found inside it."""
    outer_index: int
    inner_index: int
    outer: Quad
    inner: Quad

    @property
    def mark(self) -> CandidateMark:
        return CandidateMark(self.inner.centroid)


def iter_box_pairs(tree: ContourTree, shape_filter: ShapeFilter) -> Iterator[NestedBox]:
    """
    Walk the contour tree looking for squares that contain a square.

    Each inner candidate contour is tried at most once per call, so a box
    reached again through the hierarchy cannot produce a duplicate mark.
    Children are usually in descending size order, but not always, so every
    sibling is tried until one passes.
    """
    visited: Set[int] = set()

    for node in tree:
        # we only want elements that have children
        if not node.has_children:
            continue
        if node.first_child in visited:
            continue
        visited.add(node.first_child)

        outer = shape_filter.match_outer(node.points)
        if outer is None:
            continue

        for child in tree.siblings_from(node.first_child):
            if child != node.first_child:
                if child in visited:
                    break
                visited.add(child)

            inner = shape_filter.match_inner(tree[child].points)
            if inner is not None:
                yield NestedBox(node.index, child, outer, inner)
                break


def iter_nested_boxes(tree: ContourTree, thresholds: DetectionThresholds) -> Iterator[CandidateMark]:
    """Yield the centre of every un-ticked box in a contour tree."""
    shape_filter = ShapeFilter(thresholds)
    for box in iter_box_pairs(tree, shape_filter):
        yield box.mark


class TickBoxDetector(BaseProcessor):
    """
    Detect un-ticked tick boxes on one captured image.

    Pipeline:
    1. Blur and adaptively threshold the image
    2. Trace the full contour tree
    3. Find outer squares with an inner square child
    4. Report each inner square's centre as a candidate mark

    `run()` returns False when detection could not run at all; a True result
    with no candidates means the image genuinely has no un-ticked boxes.
    """

    name = "TickBoxDetector"

    def __init__(self, context: ScanContext, thresholds: Optional[DetectionThresholds] = None):
        super().__init__(context)
        self._thresholds = thresholds
        self.candidates: List[CandidateMark] = []
        self.boxes: List[NestedBox] = []
        self.contour_count = 0

    @property
    def thresholds(self) -> DetectionThresholds:
        if self._thresholds is None:
            self._thresholds = DetectionThresholds.from_box_size(
                self.context.box_size,
                self.config.detection,
                self.config.verification,
            )
        return self._thresholds

    def validate(self) -> bool:
        """Validate prerequisites."""
        image = self.context.image
        if image is None or not isinstance(image, np.ndarray) or image.size == 0:
            raise DetectionError("No image to search", box_size=self.context.box_size)
        if image.ndim not in (2, 3):
            raise DetectionError("Unsupported image layout", image_shape=tuple(image.shape))
        return True

    def process(self) -> bool:
        thresholds = self.thresholds
        self.log_debug(f"Searching for tick boxes of {thresholds.box_size:.1f} size")

        with self._timer.phase("binarize"):
            binary = binarize(self.context.image, thresholds)

        with self._timer.phase("contours"):
            tree = ContourTree.from_binary(binary)
        self.contour_count = len(tree)
        self.log_debug(f"Found {self.contour_count} possible tick box areas")

        shape_filter = ShapeFilter(thresholds)
        with self._timer.phase("boxes"):
            self.boxes = list(iter_box_pairs(tree, shape_filter))
        self.candidates = [box.mark for box in self.boxes]

        self.log_info(
            f"Found {len(self.candidates)} un-ticked boxes",
            contours=self.contour_count,
            box_size=f"{thresholds.box_size:.1f}"
        )
        self.log_debug("Shape rejections", **dict(shape_filter.rejections))

        if self.config.save_debug_overlays:
            self._save_debug_output(binary, shape_filter)

        return True

    def _save_debug_output(self, binary: np.ndarray, shape_filter: ShapeFilter) -> None:
        overlay = draw_detection_overlay(
            binary,
            [box.outer for box in self.boxes],
            [box.inner for box in self.boxes],
            self.candidates,
        )
        overlay_path = self.context.output_dir / f"{self.context.capture_id}-boxes.png"
        if save_image(overlay, overlay_path):
            self.log_debug(f"Saved detection overlay to {overlay_path}")

        self.save_debug_info("boxes", {
            "box_size": self.thresholds.box_size,
            "contours": self.contour_count,
            "candidates": [m.centroid.as_tuple() for m in self.candidates],
            "rejections": dict(shape_filter.rejections),
            "timing_ms": self._timer.to_dict(),
        })
