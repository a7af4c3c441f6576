"""
Contour hierarchy of a binarized image.

Wraps cv2.findContours (RETR_TREE) as an index-addressed list of nodes.
Links between nodes are contour indices, with -1 meaning "none", exactly
as OpenCV reports them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence

import cv2
import numpy as np


NO_CONTOUR = -1


@dataclass(frozen=True)
class ContourNode:
    """One traced contour and its links in the hierarchy."""
    index: int
    points: np.ndarray  # N x 1 x 2 int32, as returned by OpenCV
    next_sibling: int = NO_CONTOUR
    previous_sibling: int = NO_CONTOUR
    first_child: int = NO_CONTOUR
    parent: int = NO_CONTOUR

    @property
    def has_children(self) -> bool:
        return self.first_child != NO_CONTOUR


class ContourTree:
    """Index arena of contour nodes."""

    def __init__(self, nodes: Sequence[ContourNode]):
        self.nodes: List[ContourNode] = list(nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __getitem__(self, index: int) -> ContourNode:
        return self.nodes[index]

    def __iter__(self) -> Iterator[ContourNode]:
        return iter(self.nodes)

    def siblings_from(self, index: int) -> Iterator[int]:
        """Yield `index` and each following sibling, in hierarchy order."""
        while index != NO_CONTOUR:
            yield index
            index = self.nodes[index].next_sibling

    @classmethod
    def from_contours(
        cls,
        contours: Sequence[np.ndarray],
        hierarchy: Optional[np.ndarray]
    ) -> "ContourTree":
        """
        Build a tree from OpenCV output.

        Args:
            contours: Contour point arrays
            hierarchy: 1 x N x 4 array of [next, previous, first child, parent]
        """
        if hierarchy is None or len(contours) == 0:
            return cls([])

        links = np.asarray(hierarchy).reshape(-1, 4)
        return cls([
            ContourNode(
                index=i,
                points=np.asarray(points),
                next_sibling=int(links[i][0]),
                previous_sibling=int(links[i][1]),
                first_child=int(links[i][2]),
                parent=int(links[i][3]),
            )
            for i, points in enumerate(contours)
        ])

    @classmethod
    def from_binary(cls, binary: np.ndarray) -> "ContourTree":
        """Trace the full contour tree of a binary image."""
        contours, hierarchy = cv2.findContours(binary, cv2.RETR_TREE, cv2.CHAIN_APPROX_SIMPLE)[-2:]
        return cls.from_contours(contours, hierarchy)
