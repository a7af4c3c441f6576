"""
Centralized configuration management.

Configuration is loaded from:
1. Environment variables
2. .env file (if present)
3. Default values

Usage:
    from ticqr.config import get_config
    config = get_config()
    print(config.debug)  # True if DEBUG=1 in environment
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .exceptions import ConfigurationError


# Load .env from the working directory on module import (never overrides the real environment)
load_dotenv(find_dotenv(usecwd=True), override=False)


def _get_bool_env(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    value = os.getenv(key, "").strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get integer from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_float_env(key: str, default: float) -> float:
    """Get float from environment variable."""
    value = os.getenv(key, "").strip()
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass
class DetectionConfig:
    """
    Tuning coefficients for tick box detection.

    Every value is a multiplier of the expected box edge length (in pixels)
    or a dimensionless tolerance, so detection does not depend on the
    resolution of the captured image.
    """
    # Area windows (multipliers of the box edge, squared later)
    min_outer_factor: float = field(default_factory=lambda: _get_float_env("TICQR_MIN_OUTER_FACTOR", 1.0))
    max_outer_factor: float = field(default_factory=lambda: _get_float_env("TICQR_MAX_OUTER_FACTOR", 1.35))
    min_inner_factor: float = field(default_factory=lambda: _get_float_env("TICQR_MIN_INNER_FACTOR", 0.5))

    # How similar the simplified polygon must be to its contour - lower is more similar
    outer_polygon_similarity: float = field(
        default_factory=lambda: _get_float_env("TICQR_OUTER_POLYGON_SIMILARITY", 0.045)
    )
    inner_polygon_similarity: float = field(
        default_factory=lambda: _get_float_env("TICQR_INNER_POLYGON_SIMILARITY", 0.075)
    )

    # Largest allowed |cos| of any corner angle
    max_outer_angle_cos: float = field(default_factory=lambda: _get_float_env("TICQR_MAX_OUTER_ANGLE_COS", 0.3))
    max_inner_angle_cos: float = field(default_factory=lambda: _get_float_env("TICQR_MAX_INNER_ANGLE_COS", 0.4))

    # Image adjustment
    blur_factor: float = field(default_factory=lambda: _get_float_env("TICQR_BLUR_FACTOR", 0.25))
    threshold_block_factor: float = field(default_factory=lambda: _get_float_env("TICQR_THRESHOLD_BLOCK_FACTOR", 3.0))
    threshold_c: int = field(default_factory=lambda: _get_int_env("TICQR_THRESHOLD_C", 4))


@dataclass
class VerificationConfig:
    """Distance limits used when matching detected boxes to expected items."""
    box_distance_factor: float = field(default_factory=lambda: _get_float_env("TICQR_BOX_DISTANCE_FACTOR", 0.75))
    fiducial_distance_factor: float = field(
        default_factory=lambda: _get_float_env("TICQR_FIDUCIAL_DISTANCE_FACTOR", 0.4)
    )


@dataclass
class FeedConfig:
    """Expected-item server configuration."""
    server_url: str = field(
        default_factory=lambda: os.getenv("TICQR_SERVER_URL", "http://enterise.info/codemaker/pages.php")
    )
    lookup_param: str = field(default_factory=lambda: os.getenv("TICQR_LOOKUP_PARAM", "lookup"))
    timeout_sec: float = field(default_factory=lambda: _get_float_env("TICQR_FEED_TIMEOUT_SEC", 15.0))


@dataclass
class Config:
    """
    Main application configuration.

    All settings are loaded from environment variables with sensible defaults.
    Set DEBUG=1 in environment to enable debug mode.
    """

    # Base directory for relative log and output paths (working directory by default)
    base_dir: Path = field(default_factory=lambda: Path(os.getenv("TICQR_BASE_DIR", ".")).resolve())

    # Directory paths
    logs_dir: Path = field(default=None)
    output_dir: Path = field(default=None)

    # Debug mode (enables verbose logging and detection overlays)
    debug: bool = field(default_factory=lambda: _get_bool_env("DEBUG", False))
    log_to_file: bool = field(default_factory=lambda: _get_bool_env("LOG_TO_FILE", True))

    # Worker threads for detection and feed retrieval
    max_workers: int = field(default_factory=lambda: _get_int_env("TICQR_MAX_WORKERS", 2))

    # Sub-configurations
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    feed: FeedConfig = field(default_factory=FeedConfig)

    def __post_init__(self):
        """Resolve paths after initialization."""
        if self.logs_dir is None:
            self.logs_dir = self.base_dir / os.getenv("LOG_DIR", "logs")
        if self.output_dir is None:
            self.output_dir = self.base_dir / os.getenv("OUTPUT_DIR", "output")
        if self.max_workers < 1:
            raise ConfigurationError("At least one worker thread is needed", config_key="TICQR_MAX_WORKERS")

    @property
    def save_debug_overlays(self) -> bool:
        """Whether to save detection overlay images (enabled in debug mode)."""
        return self.debug or _get_bool_env("SAVE_DEBUG_OVERLAYS", False)

    @property
    def debug_dir(self) -> Path:
        return self.output_dir / "debug"


# Global config instance (lazily initialized)
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
