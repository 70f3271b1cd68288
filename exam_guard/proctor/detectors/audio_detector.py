"""
Audio Activity Detector - Detects talking from live spectrum snapshots

Features:
- Mean energy over the voice band (300-3400 Hz) of a byte-scaled spectrum
- Sustained speech: one continuous episode longer than 2 s
- Chatter pattern: three or more short bursts inside a 10 s window
"""

import math
import logging
from collections import deque
from typing import Deque, Optional

import numpy as np

logger = logging.getLogger(__name__)


class AudioActivityDetector:
    """
    Classifies speech presence once per tick, with temporal hysteresis.

    Timestamps are milliseconds from any monotonic clock; the detector only
    ever looks at differences.
    """

    # Calibrated against the 0-255 byte spectrum scale
    ENERGY_THRESHOLD = 45
    VOICE_BAND_LOW_HZ = 300
    VOICE_BAND_HIGH_HZ = 3400

    SUSTAINED_SPEECH_MS = 2000
    MIN_BURST_MS = 500
    BURST_WINDOW_MS = 10000
    BURSTS_FOR_CHATTER = 3

    DEFAULT_SAMPLE_RATE = 48000
    DEFAULT_FFT_SIZE = 1024

    def __init__(
        self,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        fft_size: int = DEFAULT_FFT_SIZE
    ):
        """
        Initialize audio detector.

        Args:
            sample_rate: Microphone sample rate in Hz
            fft_size: Transform size the spectrum was computed with
        """
        self.sample_rate = sample_rate
        self.fft_size = fft_size

        bin_size = sample_rate / fft_size
        self.start_bin = int(math.floor(self.VOICE_BAND_LOW_HZ / bin_size))
        self.end_bin = int(math.floor(self.VOICE_BAND_HIGH_HZ / bin_size))

        self._speech_start: Optional[float] = None
        self._bursts: Deque[float] = deque()

    @property
    def speech_start(self) -> Optional[float]:
        return self._speech_start

    @property
    def burst_history(self) -> list:
        return list(self._bursts)

    def voice_energy(self, spectrum: Optional[np.ndarray]) -> float:
        """Mean spectrum value over the voice band bins (inclusive)"""
        if spectrum is None or len(spectrum) == 0:
            return 0.0
        band = np.asarray(spectrum, dtype=np.float64)[self.start_bin:self.end_bin + 1]
        # Missing upper bins count as silence
        return float(band.sum()) / (self.end_bin - self.start_bin + 1)

    def is_speech(self, spectrum: Optional[np.ndarray]) -> bool:
        return self.voice_energy(spectrum) > self.ENERGY_THRESHOLD

    def update(self, spectrum: Optional[np.ndarray], now: float) -> bool:
        """
        Advance the state machine by one tick.

        Args:
            spectrum: Byte-scaled frequency data for this tick
            now: Current time in milliseconds

        Returns:
            True if AUDIO_DETECTED should be raised this tick
        """
        return self.update_speech(self.is_speech(spectrum), now)

    def update_speech(self, speech: bool, now: float) -> bool:
        """Same as update() for an already classified tick"""
        raised = False

        if speech:
            if self._speech_start is None:
                self._speech_start = now
            if now - self._speech_start > self.SUSTAINED_SPEECH_MS:
                raised = True
        elif self._speech_start is not None:
            duration = now - self._speech_start
            if duration > self.MIN_BURST_MS:
                self._bursts.append(now)
                logger.debug(f"Speech burst recorded ({duration:.0f} ms)")
            self._speech_start = None

        while self._bursts and now - self._bursts[0] >= self.BURST_WINDOW_MS:
            self._bursts.popleft()

        if len(self._bursts) >= self.BURSTS_FOR_CHATTER:
            raised = True

        return raised

    def reset(self):
        """Forget the current episode and burst history"""
        self._speech_start = None
        self._bursts.clear()
