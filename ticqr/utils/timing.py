"""
Timing utilities for performance measurement.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Iterator


def format_duration(duration_sec: float) -> str:
    if duration_sec < 1:
        return f"{duration_sec * 1000:.1f}ms"
    return f"{duration_sec:.2f}s"


@contextmanager
def timed_operation(
    name: str,
    logger: logging.Logger,
    log_level: int = logging.DEBUG
) -> Iterator[None]:
    """
    Log how long a block took, and whether it failed.

    Usage:
        with timed_operation("Verification", logger):
            # do work
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        logger.log(log_level, f"{name} failed after {format_duration(time.perf_counter() - start)}: {e}")
        raise
    logger.log(log_level, f"{name}: {format_duration(time.perf_counter() - start)}")


class Timer:
    """
    Accumulating timer for the phases of one processor run.

    Usage:
        timer = Timer()
        with timer.phase("binarize"):
            # do work
        print(timer.to_dict())
    """

    def __init__(self):
        self._totals: dict[str, float] = {}
        self._global_start: float = time.perf_counter()

    @contextmanager
    def phase(self, name: str) -> Iterator[None]:
        """Add the duration of the block to the total for `name`."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self._totals[name] = self._totals.get(name, 0.0) + time.perf_counter() - start

    @property
    def elapsed(self) -> float:
        """Get total elapsed time since timer creation."""
        return time.perf_counter() - self._global_start

    def to_dict(self) -> dict[str, float]:
        """Phase durations in milliseconds."""
        return {name: round(total * 1000, 3) for name, total in self._totals.items()}
