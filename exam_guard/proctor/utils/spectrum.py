"""
Spectrum Analyser - Byte-scaled frequency snapshots of live audio

Produces the same 0-255 scale as a browser AnalyserNode's
getByteFrequencyData(), which is what the speech energy threshold is
calibrated on: Blackman window, magnitude / N, exponential smoothing,
decibels mapped linearly from [min_decibels, max_decibels] to [0, 255].
"""

import threading
import logging

import numpy as np

logger = logging.getLogger(__name__)


class SpectrumAnalyser:
    """
    Ring buffer of recent mono samples plus an on-demand spectrum.

    push() is called from the audio driver's thread; get_byte_frequency_data()
    is called from the event loop once per video tick.
    """

    DEFAULT_FFT_SIZE = 1024
    DEFAULT_SMOOTHING = 0.8
    MIN_DECIBELS = -100.0
    MAX_DECIBELS = -30.0

    def __init__(
        self,
        sample_rate: int = 48000,
        fft_size: int = DEFAULT_FFT_SIZE,
        smoothing: float = DEFAULT_SMOOTHING
    ):
        self.sample_rate = sample_rate
        self.fft_size = fft_size
        self.smoothing = smoothing

        self._buffer = np.zeros(fft_size, dtype=np.float32)
        self._lock = threading.Lock()
        n = np.arange(fft_size)
        self._window = (
            0.42
            - 0.5 * np.cos(2 * np.pi * n / fft_size)
            + 0.08 * np.cos(4 * np.pi * n / fft_size)
        )
        self._smoothed = np.zeros(fft_size // 2, dtype=np.float64)

    @property
    def frequency_bin_count(self) -> int:
        return self.fft_size // 2

    def push(self, samples: np.ndarray):
        """
        Append samples (float, -1..1). Multi-channel input is averaged to mono.
        """
        samples = np.asarray(samples, dtype=np.float32)
        if samples.ndim > 1:
            samples = samples.mean(axis=1)

        n = len(samples)
        if n == 0:
            return

        with self._lock:
            if n >= self.fft_size:
                self._buffer[:] = samples[-self.fft_size:]
            else:
                self._buffer = np.roll(self._buffer, -n)
                self._buffer[-n:] = samples

    def get_float_frequency_data(self) -> np.ndarray:
        """Smoothed spectrum in decibels"""
        with self._lock:
            block = self._buffer.copy()

        spectrum = np.fft.rfft(block * self._window)[:self.frequency_bin_count]
        magnitude = np.abs(spectrum) / self.fft_size

        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitude

        with np.errstate(divide="ignore"):
            return 20.0 * np.log10(self._smoothed)

    def get_byte_frequency_data(self) -> np.ndarray:
        """Smoothed spectrum on the 0-255 byte scale"""
        db = self.get_float_frequency_data()
        scale = 255.0 / (self.MAX_DECIBELS - self.MIN_DECIBELS)
        scaled = np.floor(scale * (db - self.MIN_DECIBELS))
        return np.clip(np.nan_to_num(scaled, neginf=0.0), 0, 255).astype(np.uint8)
