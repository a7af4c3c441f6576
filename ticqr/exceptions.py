"""
Custom exceptions for the tick box scanner.

All application-specific exceptions inherit from TicqrError.
"""

from __future__ import annotations

from typing import Optional, Any


class TicqrError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether the error can potentially be recovered from
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(TicqrError):
    """
    Invalid or missing configuration.

    Examples:
        - Missing calibration file
        - Invalid value for configuration option
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=False)


class ImageLoadError(TicqrError):
    """
    Captured image could not be read or decoded.

    The caller should ask for a new capture rather than treat this as an
    image without tick boxes.
    """

    def __init__(self, message: str, image_path: Optional[str] = None):
        details = {"image_path": image_path} if image_path else None
        super().__init__(message, details=details, recoverable=True)


class DetectionError(TicqrError):
    """
    Tick box detection could not run on the captured image.

    Examples:
        - Empty or undecodable image
        - Unsupported channel layout
    """

    def __init__(
        self,
        message: str,
        box_size: Optional[float] = None,
        image_shape: Optional[tuple] = None
    ):
        details = {}
        if box_size is not None:
            details["box_size"] = box_size
        if image_shape is not None:
            details["image_shape"] = image_shape
        super().__init__(message, details=details, recoverable=True)


class CalibrationError(TicqrError):
    """
    Calibration data is missing or unusable.

    Examples:
        - Non-positive control point spacing
        - Grid transform that is not a 3x3 matrix
        - Expected item without a grid position at verification time
    """

    def __init__(self, message: str, field_name: Optional[str] = None, field_value: Optional[Any] = None):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)[:100]
        super().__init__(message, details=details, recoverable=False)


class ItemFeedError(TicqrError):
    """
    Expected-item list could not be retrieved or parsed.

    No partial item list is ever used after this error.

    Examples:
        - Connection failure or HTTP error
        - Invalid JSON
        - Tick box entry missing a field
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        page_id: Optional[str] = None,
        response_text: Optional[str] = None
    ):
        details = {}
        if url:
            details["url"] = url
        if page_id:
            details["page_id"] = page_id
        if response_text:
            # Truncate long responses
            details["response_preview"] = response_text[:500]
        super().__init__(message, details=details, recoverable=True)


class PixelOutOfRangeError(TicqrError, IndexError):
    """A pixel was sampled outside the bounds of the captured image."""

    def __init__(self, x: int, y: int, width: int, height: int):
        super().__init__(
            f"Pixel ({x}, {y}) outside {width}x{height} image",
            details={"x": x, "y": y, "width": width, "height": height},
            recoverable=True
        )
        self.x = x
        self.y = y
