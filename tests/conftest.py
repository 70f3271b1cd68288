"""
Pytest Configuration for exam-guard Tests

Fakes for every external capability: no camera, microphone or model is
touched by the suite.
"""
import asyncio
import math
import os
import sys
from typing import List, Optional

import numpy as np
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exam_guard.proctor.types import Landmark, ObjectPrediction  # noqa: E402

FACE_MESH_POINTS = 478


def build_face(
    width: float = 0.3,
    roll_degrees: float = 0.0,
    nose_shift: float = 0.0,
    iris_shift: float = 0.0,
    with_iris: bool = True
) -> List[Landmark]:
    """
    Synthetic Face Mesh landmark set.

    All x coordinates lie in [0, width], with landmark 0 at x=0 and
    landmark 10 at x=width, so the bounding-box width is exactly `width`.
    Eye corners sit at 0.2/0.4/0.6/0.8 of the width, irises at the eye
    midpoints. `nose_shift` moves the nose tip in eye distances,
    `iris_shift` moves both irises in eye widths, `roll_degrees` rotates the
    right outer eye corner around the left one.
    """
    count = FACE_MESH_POINTS if with_iris else 468
    y = 0.5
    points = [Landmark(width * 0.5, y) for _ in range(count)]

    points[0] = Landmark(0.0, y)
    points[10] = Landmark(width, y)

    left_outer = Landmark(width * 0.2, y)
    left_inner = Landmark(width * 0.4, y)
    right_inner = Landmark(width * 0.6, y)
    eye_distance = width * 0.6

    theta = math.radians(roll_degrees)
    right_outer = Landmark(
        left_outer.x + eye_distance * math.cos(theta),
        left_outer.y + eye_distance * math.sin(theta)
    )

    points[33] = left_outer
    points[133] = left_inner
    points[362] = right_inner
    points[263] = right_outer

    eyes_mid_x = (left_outer.x + right_outer.x) / 2
    points[1] = Landmark(eyes_mid_x + nose_shift * eye_distance, y + 0.05)

    if with_iris:
        eye_width = width * 0.2
        points[468] = Landmark(width * 0.3 + iris_shift * eye_width, y)
        points[473] = Landmark(width * 0.7 + iris_shift * eye_width, y)

    return points


class FakeClock:
    """Manually advanced millisecond clock"""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float):
        self.now += ms


class FakeLandmarkDetector:
    """Returns a queued result per call (last one repeats)"""

    def __init__(self, results=None, error: Optional[Exception] = None):
        self.results = list(results or [[]])
        self.error = error
        self.calls = 0
        self.closed = False

    def detect(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]

    def close(self):
        self.closed = True


class FakeObjectDetector:
    def __init__(self, labels=None, error: Optional[Exception] = None):
        self.labels = list(labels or [])
        self.error = error
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [ObjectPrediction(label, 0.9, (0.0, 0.0, 10.0, 10.0)) for label in self.labels]


class FakeSpectrum:
    """Byte spectrum that is either loud or quiet across all bins"""

    sample_rate = 48000
    fft_size = 1024

    def __init__(self, level: int = 0):
        self.level = level

    def get_byte_frequency_data(self):
        return np.full(self.fft_size // 2, self.level, dtype=np.uint8)


class FakeCapture:
    """Capture stream serving a fixed number of blank frames"""

    def __init__(self, frames: int = 0, open_error: Optional[Exception] = None):
        self.remaining = frames
        self.open_error = open_error
        self.analyser = FakeSpectrum()
        self.opened = False
        self.stopped = False
        self.events: List[str] = []

    def open(self):
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    async def read_frame(self):
        await asyncio.sleep(0)
        if self.stopped or self.remaining <= 0:
            return None
        self.remaining -= 1
        return np.zeros((4, 4, 3), dtype=np.uint8)

    def stop(self):
        self.stopped = True
        self.events.append("capture_stopped")


@pytest.fixture
def frame():
    return np.zeros((4, 4, 3), dtype=np.uint8)


@pytest.fixture
def clock():
    return FakeClock()
