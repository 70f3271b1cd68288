"""
Capture Stream - Owns the webcam and microphone for one session

Frames are read on demand; microphone blocks are pushed into a
SpectrumAnalyser from the audio driver's callback. Nothing is recorded.
"""

import asyncio
import logging
from typing import Optional

import cv2
import numpy as np

from .errors import ProctorInitializationError
from .utils.spectrum import SpectrumAnalyser

logger = logging.getLogger(__name__)


class CaptureStream:
    """
    Live audio + video capture.

    The spectrum analyser is exposed as `analyser` and satisfies the
    SpectrumSource interface.
    """

    def __init__(
        self,
        camera_index: int = 0,
        frame_width: int = 640,
        frame_height: int = 480,
        sample_rate: int = 48000,
        audio_device=None,
        fft_size: int = SpectrumAnalyser.DEFAULT_FFT_SIZE
    ):
        self.camera_index = camera_index
        self.frame_width = frame_width
        self.frame_height = frame_height
        self.sample_rate = sample_rate
        self.audio_device = audio_device

        self.analyser = SpectrumAnalyser(sample_rate=sample_rate, fft_size=fft_size)

        self._capture: Optional[cv2.VideoCapture] = None
        self._audio_stream = None
        self._stopped = False

    @classmethod
    def from_settings(cls, settings) -> "CaptureStream":
        return cls(
            camera_index=settings.CAMERA_INDEX,
            frame_width=settings.FRAME_WIDTH,
            frame_height=settings.FRAME_HEIGHT,
            sample_rate=settings.AUDIO_SAMPLE_RATE,
            audio_device=settings.AUDIO_DEVICE
        )

    @property
    def is_open(self) -> bool:
        return self._capture is not None and not self._stopped

    def open(self):
        """
        Acquire camera and microphone.

        Raises:
            ProctorInitializationError: if either device cannot be opened
        """
        capture = cv2.VideoCapture(self.camera_index)
        if not capture.isOpened():
            capture.release()
            raise ProctorInitializationError(f"Camera {self.camera_index} could not be opened")

        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.frame_width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.frame_height)

        try:
            import sounddevice as sd

            stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                device=self.audio_device,
                callback=self._on_audio
            )
            stream.start()
        except Exception as e:
            capture.release()
            raise ProctorInitializationError(f"Microphone could not be opened: {e}") from e

        self._capture = capture
        self._audio_stream = stream
        self._stopped = False
        logger.info(
            f"Capture started: camera={self.camera_index} "
            f"{self.frame_width}x{self.frame_height}, audio={self.sample_rate} Hz"
        )

    def _on_audio(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Audio stream status: {status}")
        self.analyser.push(indata)

    async def read_frame(self) -> Optional[np.ndarray]:
        """Next BGR frame, or None once the stream has ended"""
        if not self.is_open:
            return None

        ok, frame = await asyncio.to_thread(self._capture.read)
        if not ok or self._stopped:
            return None
        return frame

    def stop(self):
        """Stop microphone and camera. Safe to call more than once."""
        if self._stopped:
            return
        self._stopped = True

        if self._audio_stream is not None:
            try:
                self._audio_stream.stop()
                self._audio_stream.close()
            except Exception as e:
                logger.warning(f"Error closing microphone: {e}")
            self._audio_stream = None

        if self._capture is not None:
            self._capture.release()

        logger.info("Capture stopped")
