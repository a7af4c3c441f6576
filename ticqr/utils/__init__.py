"""
Utility functions for the tick box scanner.
"""

from .image_utils import (
    load_image,
    save_image,
    to_grayscale,
    binarize,
    ImagePixelSampler,
    draw_detection_overlay,
)

from .item_feed import (
    ItemFeedClient,
    parse_item_feed,
    parse_item_feed_text,
)

from .timing import (
    timed_operation,
    Timer,
)

__all__ = [
    # Image utilities
    "load_image",
    "save_image",
    "to_grayscale",
    "binarize",
    "ImagePixelSampler",
    "draw_detection_overlay",

    # Item feed
    "ItemFeedClient",
    "parse_item_feed",
    "parse_item_feed_text",

    # Timing utilities
    "timed_operation",
    "Timer",
]
