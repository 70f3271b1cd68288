"""
Frame Scheduler - The per-frame detection loop

Every frame:
1. launch an object scan if the scan interval has elapsed (not awaited)
2. run landmark inference and classify the faces
3. add the cached phone result
4. pull one audio spectrum and advance the speech detector
5. hand the merged raised-kind set to the aggregator

This loop is the only writer of aggregator state.
"""

import asyncio
import time
import logging
from typing import Callable, Optional, Set

import numpy as np

from .detectors import AudioActivityDetector, LandmarkClassifier, ObjectPresenceDetector
from .metrics import ViolationAggregator
from .types import FaceLandmarkDetector, SpectrumSource, ViolationKind

logger = logging.getLogger(__name__)


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class FrameScheduler:
    """Drives the detectors over a capture stream at their cadences"""

    def __init__(
        self,
        landmark_detector: FaceLandmarkDetector,
        object_detector: ObjectPresenceDetector,
        audio_detector: AudioActivityDetector,
        aggregator: ViolationAggregator,
        spectrum_source: Optional[SpectrumSource] = None,
        classifier: Optional[LandmarkClassifier] = None,
        clock: Callable[[], float] = monotonic_ms
    ):
        """
        Args:
            landmark_detector: Multi-face landmark capability
            object_detector: Rate-limited phone scanner
            audio_detector: Speech state machine
            aggregator: Violation counter to feed
            spectrum_source: Live microphone spectrum (None disables audio)
            classifier: Landmark geometry rules
            clock: Millisecond clock
        """
        self.landmark_detector = landmark_detector
        self.object_detector = object_detector
        self.audio_detector = audio_detector
        self.aggregator = aggregator
        self.spectrum_source = spectrum_source
        self.classifier = classifier or LandmarkClassifier()
        self._clock = clock

        self._stopped = False
        self.frame_count = 0
        self.landmark_errors = 0

    @property
    def stopped(self) -> bool:
        return self._stopped

    async def run(self, frame_source) -> int:
        """
        Process frames until the source ends or stop() is called.

        Args:
            frame_source: Object with `async read_frame() -> Optional[ndarray]`

        Returns:
            Number of frames processed
        """
        while not self._stopped:
            frame = await frame_source.read_frame()
            if frame is None:
                logger.info("Capture stream ended")
                break
            await self.process_frame(frame)

        return self.frame_count

    async def process_frame(self, frame: np.ndarray) -> Set[ViolationKind]:
        """
        Evaluate one frame and update the aggregator.

        Returns:
            The merged raised-kind set for this tick
        """
        if self._stopped:
            return set()

        now = self._clock()
        raised: Set[ViolationKind] = set()

        self.object_detector.maybe_scan(frame, now)

        try:
            faces = await asyncio.to_thread(self.landmark_detector.detect, frame)
            if not self._stopped:
                raised |= self.classifier.classify(faces)
        except Exception as e:
            self.landmark_errors += 1
            logger.debug(f"Landmark inference error: {e}")

        if self._stopped:
            # Torn down while inference was running
            return set()

        if self.object_detector.phone_detected:
            raised.add(ViolationKind.MOBILE_DETECTED)

        if self.audio_detector.update(self._read_spectrum(), now):
            raised.add(ViolationKind.AUDIO_DETECTED)

        self.aggregator.update(raised)
        self.frame_count += 1
        return raised

    def _read_spectrum(self) -> Optional[np.ndarray]:
        if self.spectrum_source is None:
            return None
        try:
            return self.spectrum_source.get_byte_frequency_data()
        except Exception as e:
            logger.debug(f"Audio spectrum error: {e}")
            return None

    def stop(self):
        """Make every later tick and late object scan a no-op"""
        self._stopped = True
        self.object_detector.close()
