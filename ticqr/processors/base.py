"""
Base processor class and scan context.

Provides common functionality for the image processors including
logging, timing, error handling, and configuration access.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Any

import numpy as np

from ..config import Config, get_config
from ..logger import get_logger
from ..utils.timing import Timer, format_duration


@dataclass
class ScanContext:
    """
    Inputs shared by the processors working on one captured image.

    Contains:
    - Configuration
    - The captured image
    - The expected box size derived from calibration
    - Where debug output goes
    """

    image: Optional[np.ndarray]
    box_size: float
    config: Optional[Config] = None
    capture_id: str = "capture"
    output_dir: Optional[Path] = None

    def __post_init__(self):
        if self.config is None:
            self.config = get_config()
        if self.output_dir is None:
            self.output_dir = self.config.debug_dir


class BaseProcessor(ABC):
    """
    Abstract base class for the image processors.

    Provides:
    - Consistent logging
    - Timing instrumentation
    - Error handling
    - Configuration access
    """

    # Processor name for logging (override in subclass)
    name: str = "BaseProcessor"

    def __init__(self, context: ScanContext):
        self.context = context
        self.config = context.config
        self.logger = get_logger(self.name)
        self._timer = Timer()
        self.error: Optional[Exception] = None

    @property
    def debug_mode(self) -> bool:
        """Check if debug mode is enabled."""
        return self.config.debug

    def log_debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message (only in debug mode)."""
        if self.debug_mode:
            extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
            self.logger.debug(f"{message} {extra}".strip())

    def log_info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.info(f"{message} {extra}".strip())

    def log_warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        extra = " ".join(f"{k}={v}" for k, v in kwargs.items())
        self.logger.warning(f"{message} {extra}".strip())

    def log_error(self, message: str, error: Optional[Exception] = None) -> None:
        """Log error message."""
        if error:
            self.logger.error(f"{message}: {error}", exc_info=self.debug_mode)
        else:
            self.logger.error(message)

    @abstractmethod
    def process(self) -> bool:
        """
        Execute the processor's main task.

        Returns:
            True if processing succeeded, False otherwise
        """

    def validate(self) -> bool:
        """
        Validate that processor can run.

        Override in subclass to check prerequisites.
        """
        return True

    def run(self) -> bool:
        """
        Run processor with timing and error handling.

        Any exception is logged, kept in `self.error` and reported as a
        failed run, so callers can tell a failure apart from an empty result.

        Returns:
            True if processing succeeded
        """
        self.log_debug(f"Starting {self.name}", capture=self.context.capture_id)
        self._timer = Timer()
        self.error = None

        try:
            if not self.validate():
                self.log_error("Validation failed")
                return False

            result = self.process()

            self.log_debug(f"Completed {self.name}", duration=format_duration(self._timer.elapsed))
            return result

        except Exception as e:
            self.error = e
            self.log_error(f"Failed after {format_duration(self._timer.elapsed)}", error=e)
            return False

    def save_debug_info(self, name: str, data: Any) -> Optional[Path]:
        """
        Save debug information to a JSON file.

        Only saves if debug output is enabled.

        Returns:
            Path to saved file, or None if not saved
        """
        if not self.config.save_debug_overlays or not self.context.output_dir:
            return None

        debug_dir = self.context.output_dir
        debug_dir.mkdir(parents=True, exist_ok=True)

        debug_path = debug_dir / f"{self.context.capture_id}-{name}.json"
        debug_path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
            errors="replace"
        )

        self.log_debug(f"Saved debug info to {debug_path}")
        return debug_path
