"""
Scan session: one capture at a time, from image and page id to verified items.

Two producers finish in either order: box detection on the captured image
and the expected-item lookup for the decoded page id. Verification runs
exactly once, as soon as both have arrived. A new capture (or a reset)
discards anything still in flight from the previous one.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

import numpy as np

from .config import Config, get_config
from .exceptions import DetectionError, ItemFeedError, TicqrError
from .logger import get_logger
from .models import Calibration, CandidateMark, DetectionThresholds, ExpectedItem, ItemFeed, VerificationResult
from .processors.base import ScanContext
from .processors.box_detector import TickBoxDetector
from .processors.box_verifier import BoxVerifier
from .processors.grid_mapper import GridMapper
from .utils.image_utils import ImagePixelSampler
from .utils.item_feed import ItemFeedClient
from .utils.timing import timed_operation

logger = get_logger(__name__)


class ScanSession:
    """
    Coordinate detection, item lookup and verification for captured forms.

    Callbacks are invoked on whichever thread completes the work:
        on_result(VerificationResult) once per capture
        on_error(TicqrError) when detection or the lookup fails
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        feed_client: Optional[ItemFeedClient] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        on_result: Optional[Callable[[VerificationResult], None]] = None,
        on_error: Optional[Callable[[TicqrError], None]] = None,
    ):
        self.config = config or get_config()
        self.feed_client = feed_client or ItemFeedClient(self.config.feed)
        self._executor = executor or ThreadPoolExecutor(max_workers=self.config.max_workers)
        self._owns_executor = executor is None
        self.on_result = on_result
        self.on_error = on_error

        self._lock = threading.Lock()
        self._generation = 0
        self._clear()

    def _clear(self) -> None:
        self.image: Optional[np.ndarray] = None
        self.calibration: Optional[Calibration] = None
        self.destination: Optional[str] = None
        self.items: List[ExpectedItem] = []
        self.candidates: List[CandidateMark] = []
        self.items_loaded = False
        self.image_parsed = False
        self.result: Optional[VerificationResult] = None
        self.error: Optional[TicqrError] = None

    @property
    def generation(self) -> int:
        return self._generation

    def reset(self) -> None:
        """Forget the current capture and ignore its in-flight work (rescan)."""
        with self._lock:
            self._generation += 1
            self._clear()
        logger.debug(f"Session reset (generation {self._generation})")

    def start_capture(
        self,
        image: np.ndarray,
        calibration: Calibration,
        page_id: Optional[str] = None,
    ) -> int:
        """
        Begin processing a new capture.

        Detection is dispatched to the worker pool. When `page_id` is given,
        the expected items are fetched from the server as well; otherwise
        call `items_received` with them.

        Returns:
            Generation number identifying this capture
        """
        self.reset()
        with self._lock:
            generation = self._generation
            self.image = image
            self.calibration = calibration

        self._executor.submit(self._detect, generation, image, calibration.box_size)
        if page_id is not None:
            self._executor.submit(self._fetch, generation, page_id)
        return generation

    def _detect(self, generation: int, image: np.ndarray, box_size: float) -> None:
        context = ScanContext(
            image=image, box_size=box_size, config=self.config, capture_id=f"capture-{generation:04d}"
        )
        detector = TickBoxDetector(context)
        if detector.run():
            self.detection_succeeded(generation, detector.candidates)
        else:
            error = detector.error
            if not isinstance(error, TicqrError):
                error = DetectionError(f"Box detection failed: {error}", box_size=box_size)
            self.failed(generation, error)

    def _fetch(self, generation: int, page_id: str) -> None:
        try:
            feed = self.feed_client.fetch(page_id)
        except ItemFeedError as e:
            self.failed(generation, e)
            return
        self.items_received(generation, feed)

    def items_received(self, generation: int, feed: ItemFeed) -> None:
        """Store the expected items for a capture and verify if detection is done."""
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Ignoring items for stale capture {generation}")
                return
            self.destination = feed.destination
            self.items = list(feed.items)
            self.items_loaded = True
        self._verify_if_ready(generation)

    def detection_succeeded(self, generation: int, candidates: List[CandidateMark]) -> None:
        """Store the detected boxes for a capture and verify if the items are loaded."""
        with self._lock:
            if generation != self._generation:
                logger.debug(f"Ignoring detection result for stale capture {generation}")
                return
            self.candidates = list(candidates)
            self.image_parsed = True
        self._verify_if_ready(generation)

    def failed(self, generation: int, error: TicqrError) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self.error = error
        logger.warning(f"Capture {generation} failed: {error}")
        if self.on_error:
            self.on_error(error)

    def _verify_if_ready(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self.result is not None:
                return
            if not (self.items_loaded and self.image_parsed):
                return
            try:
                self.result = self._verify()
            except TicqrError as e:
                self.error = e
            result, error = self.result, self.error

        if result is not None and self.on_result:
            self.on_result(result)
        elif error is not None and self.on_error:
            self.on_error(error)

    def _verify(self) -> VerificationResult:
        thresholds = DetectionThresholds.from_box_size(
            self.calibration.box_size, self.config.detection, self.config.verification
        )
        with timed_operation("Verification", logger):
            if self.items:
                GridMapper.from_calibration(self.calibration).assign_grid_positions(self.items)
            sampler = ImagePixelSampler(self.image)
            return BoxVerifier(thresholds).verify(
                self.items,
                self.candidates,
                self.calibration.fiducial_pairs,
                sampler.is_transparent_at,
            )

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "ScanSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
