"""
Object Presence Detector - Rate-limited phone scan over an object detector

The scan runs in a worker thread as a background task. The loop reads the
cached result of the last finished scan and never waits for the current one.
"""

import asyncio
import logging
from typing import Iterable, Optional, Set

import numpy as np

from ..types import ObjectDetector, ObjectPrediction

logger = logging.getLogger(__name__)


class ObjectPresenceDetector:
    """
    Detects restricted objects (cell phones) at a bounded cadence.

    Only the "cell phone" class of the underlying detector is consumed.
    """

    RESTRICTED_LABELS: Set[str] = {"cell phone"}
    DEFAULT_SCAN_INTERVAL_MS = 500

    def __init__(
        self,
        detector: ObjectDetector,
        scan_interval_ms: float = DEFAULT_SCAN_INTERVAL_MS
    ):
        """
        Initialize object presence detector.

        Args:
            detector: Object-detection capability
            scan_interval_ms: Minimum time between scan launches
        """
        self.detector = detector
        self.scan_interval_ms = scan_interval_ms

        self._last_scan_at: Optional[float] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._phone_detected = False
        self._closed = False
        self._scan_count = 0
        self._error_count = 0

    @property
    def phone_detected(self) -> bool:
        """Cached result of the most recent finished scan"""
        return self._phone_detected

    @property
    def scan_in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def should_scan(self, now: float) -> bool:
        if self._closed or self.scan_in_flight:
            return False
        if self._last_scan_at is None:
            return True
        return now - self._last_scan_at >= self.scan_interval_ms

    def maybe_scan(self, frame: np.ndarray, now: float) -> Optional[asyncio.Task]:
        """
        Launch a background scan if the interval has elapsed.

        Must be called from a running event loop. Returns the launched task
        (or None) without awaiting it.
        """
        if not self.should_scan(now):
            return None

        self._last_scan_at = now
        self._in_flight = asyncio.ensure_future(self.scan(frame))
        return self._in_flight

    async def scan(self, frame: np.ndarray) -> bool:
        """Run one detection and update the cached result"""
        try:
            predictions = await asyncio.to_thread(self.detector.detect, frame)
            found = self.contains_restricted(predictions)
        except Exception as e:
            self._error_count += 1
            logger.debug(f"Object detection error: {e}")
            found = False

        if self._closed:
            # Late result after teardown
            return False

        self._scan_count += 1
        if found != self._phone_detected:
            logger.info(f"Phone presence changed: {found}")
        self._phone_detected = found
        return found

    @classmethod
    def contains_restricted(cls, predictions: Iterable[ObjectPrediction]) -> bool:
        return any(p.label.lower() in cls.RESTRICTED_LABELS for p in predictions)

    def get_metrics(self):
        return {
            "scans": self._scan_count,
            "errors": self._error_count,
            "phone_detected": self._phone_detected
        }

    def close(self):
        """Discard any in-flight scan; later results are ignored"""
        self._closed = True
        self._phone_detected = False
        if self._in_flight is not None and not self._in_flight.done():
            self._in_flight.cancel()
        self._in_flight = None
