"""
Tests for the concrete capability adapters and the capture stream

Models and devices are mocked; only the adapter logic runs.
"""

from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from exam_guard.config import Settings
from exam_guard.proctor.capture import CaptureStream
from exam_guard.proctor.errors import ProctorInitializationError
from exam_guard.proctor.models import YoloObjectDetector, load_face_landmarker, load_object_detector


def fake_box(cls_id, conf):
    box = MagicMock()
    box.cls = [cls_id]
    box.conf = [conf]
    box.xyxy = [MagicMock(tolist=MagicMock(return_value=[1.0, 2.0, 3.0, 4.0]))]
    return box


class TestYoloObjectDetector:

    def test_predictions_are_mapped(self, frame):
        model = MagicMock()
        model.names = {0: "person", 67: "cell phone"}
        result = MagicMock()
        result.boxes = [fake_box(0, 0.9), fake_box(67, 0.7)]
        model.predict.return_value = [result]

        with patch("exam_guard.proctor.models.model_loader.get_yolo_model", return_value=model):
            detector = YoloObjectDetector(model_path="custom.pt", confidence=0.4)
            predictions = detector.detect(frame)

        model.predict.assert_called_once_with(frame, conf=0.4, verbose=False)
        assert [p.label for p in predictions] == ["person", "cell phone"]
        assert predictions[1].confidence == pytest.approx(0.7)
        assert predictions[1].box == (1.0, 2.0, 3.0, 4.0)

    def test_empty_boxes(self, frame):
        model = MagicMock()
        result = MagicMock()
        result.boxes = None
        model.predict.return_value = [result]

        with patch("exam_guard.proctor.models.model_loader.get_yolo_model", return_value=model):
            assert YoloObjectDetector().detect(frame) == []


class TestLoaders:

    def test_object_loader_wraps_errors(self):
        with patch("exam_guard.proctor.models.model_loader.get_yolo_model",
                   side_effect=OSError("weights missing")):
            with pytest.raises(ProctorInitializationError):
                load_object_detector(Settings())

    def test_face_loader_wraps_errors(self):
        with patch("exam_guard.proctor.models.model_loader.MediaPipeFaceLandmarker",
                   side_effect=ImportError("No module named 'mediapipe'")):
            with pytest.raises(ProctorInitializationError):
                load_face_landmarker(Settings())


class TestCaptureStream:

    def test_camera_failure(self):
        capture = MagicMock()
        capture.isOpened.return_value = False

        with patch("exam_guard.proctor.capture.cv2.VideoCapture", return_value=capture):
            stream = CaptureStream(camera_index=3)
            with pytest.raises(ProctorInitializationError):
                stream.open()

        capture.release.assert_called_once()
        assert stream.is_open is False

    def test_audio_callback_feeds_analyser(self):
        stream = CaptureStream()
        stream._on_audio(np.ones((256, 1), dtype=np.float32), 256, None, None)
        assert stream.analyser._buffer[-256:].tolist() == [1.0] * 256

    @pytest.mark.asyncio
    async def test_closed_stream_has_no_frames(self):
        stream = CaptureStream()
        assert await stream.read_frame() is None
        stream.stop()
        stream.stop()
