"""
Image processing utility functions.

Loading and saving captured images, binarization ahead of contour tracing,
pixel sampling for the outside-image check, and debug overlays.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np

from ..exceptions import DetectionError, PixelOutOfRangeError
from ..models import CandidateMark, DetectionThresholds, Quad


def load_image(path: Path, flags: int = cv2.IMREAD_UNCHANGED) -> Optional[np.ndarray]:
    """
    Load image from file with proper Unicode path handling.

    The alpha channel is kept by default, since transparent pixels mark the
    area outside the captured form.

    Args:
        path: Path to image file
        flags: OpenCV imread flags

    Returns:
        Loaded image as numpy array, or None if failed
    """
    path = Path(path)
    if not path.exists():
        return None

    # Use cv2.imdecode for Unicode path support
    data = np.fromfile(str(path), dtype=np.uint8)
    if data.size == 0:
        return None
    return cv2.imdecode(data, flags)


def save_image(image: np.ndarray, path: Path, compression: int = 6) -> bool:
    """
    Save image to file with proper Unicode path handling.

    Args:
        image: Image to save
        path: Output path
        compression: PNG compression level (0-9)

    Returns:
        True if successful, False otherwise
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    ext = path.suffix.lower()
    params = [cv2.IMWRITE_PNG_COMPRESSION, compression] if ext == ".png" else []

    success, data = cv2.imencode(ext, image, params)
    if success:
        data.tofile(str(path))
        return True
    return False


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """Convert a BGR, BGRA or single channel image to 8-bit grayscale."""
    if image is None or image.size == 0:
        raise DetectionError("Image is empty")

    if image.ndim == 2:
        gray = image
    elif image.ndim == 3 and image.shape[2] == 1:
        gray = image[:, :, 0]
    elif image.ndim == 3 and image.shape[2] == 3:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    elif image.ndim == 3 and image.shape[2] == 4:
        gray = cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    else:
        raise DetectionError("Unsupported image layout", image_shape=tuple(image.shape))

    if gray.dtype != np.uint8:
        gray = cv2.normalize(gray, None, 0, 255, cv2.NORM_MINMAX).astype(np.uint8)
    return gray


def binarize(image: np.ndarray, thresholds: DetectionThresholds) -> np.ndarray:
    """
    Blur and adaptively threshold an image ready for contour tracing.

    Paper becomes white (255) and printed lines black (0). Blur and
    threshold window sizes scale with the expected box size.

    Args:
        image: Captured image (color or grayscale)
        thresholds: Per-image detection thresholds

    Returns:
        Binary single channel image
    """
    # blur the color capture before converting to grey
    blurred = cv2.GaussianBlur(
        image,
        (thresholds.blur_size, thresholds.blur_size),
        sigmaX=thresholds.blur_sigma,
        sigmaY=thresholds.blur_sigma
    )
    gray = to_grayscale(blurred)

    return cv2.adaptiveThreshold(
        gray, 255,
        cv2.ADAPTIVE_THRESH_GAUSSIAN_C,
        cv2.THRESH_BINARY,
        thresholds.threshold_block_size,
        thresholds.threshold_c
    )


class ImagePixelSampler:
    """
    Sample the captured image to find positions that were never photographed.

    Areas outside the cropped capture are fully transparent. Images without
    an alpha channel have no transparent pixels.
    """

    def __init__(self, image: np.ndarray):
        self.image = image
        self.height, self.width = image.shape[:2]
        self.has_alpha = image.ndim == 3 and image.shape[2] == 4

    def is_transparent_at(self, x: int, y: int) -> bool:
        """
        Check whether the pixel at (x, y) is fully transparent.

        Raises:
            PixelOutOfRangeError: if (x, y) lies outside the image
        """
        # numpy would silently wrap negative indices
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            raise PixelOutOfRangeError(x, y, self.width, self.height)
        if not self.has_alpha:
            return False
        return int(self.image[y, x, 3]) == 0


def draw_detection_overlay(
    binary: np.ndarray,
    outer_boxes: Iterable[Quad],
    inner_boxes: Iterable[Quad],
    candidates: Iterable[CandidateMark],
    color: Tuple[int, int, int] = (0, 200, 0)
) -> np.ndarray:
    """
    Draw accepted boxes and candidate centres for debugging.

    Args:
        binary: Binarized image that detection ran on
        outer_boxes: Accepted outer boxes
        inner_boxes: Accepted inner boxes
        candidates: Candidate marks
        color: BGR color for outer boxes (inner boxes and centres are red)

    Returns:
        Color image with overlays drawn
    """
    output = cv2.cvtColor(binary, cv2.COLOR_GRAY2BGR)

    def _polygon(quad: Quad) -> np.ndarray:
        return np.array(
            [[round(p.x), round(p.y)] for p in quad.vertices], dtype=np.int32
        ).reshape(-1, 1, 2)

    for quad in outer_boxes:
        cv2.polylines(output, [_polygon(quad)], True, color, 2)
    for quad in inner_boxes:
        cv2.polylines(output, [_polygon(quad)], True, (0, 0, 255), 1)
    for mark in candidates:
        center = (round(mark.centroid.x), round(mark.centroid.y))
        cv2.circle(output, center, 3, (0, 0, 255), -1)

    return output
