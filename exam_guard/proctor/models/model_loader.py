"""
Model Loader - Concrete inference capabilities behind the detector interfaces

- MediaPipe Face Mesh (refined irises) for multi-face landmarks
- Ultralytics YOLO (COCO classes) for object detection

Both libraries are imported lazily so the rest of the package (and the test
suite) works without them installed.
"""

import logging
from functools import lru_cache
from typing import List

import cv2
import numpy as np

from ..errors import ProctorInitializationError
from ..types import FaceLandmarkSet, Landmark, ObjectPrediction

logger = logging.getLogger(__name__)


@lru_cache(maxsize=2)
def get_yolo_model(model_path: str = "yolov8n.pt"):
    """
    Get YOLO model for object detection.

    Ultralytics downloads the stock COCO weights on first use if the path
    is a known model name.
    """
    from ultralytics import YOLO

    logger.info(f"Loading YOLO model from: {model_path}")
    return YOLO(model_path)


class MediaPipeFaceLandmarker:
    """FaceLandmarkDetector backed by MediaPipe Face Mesh"""

    def __init__(
        self,
        max_num_faces: int = 4,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5
    ):
        import mediapipe as mp

        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=max_num_faces,
            refine_landmarks=True,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence
        )
        logger.info(f"MediaPipe Face Mesh initialized (max_num_faces={max_num_faces})")

    def detect(self, frame: np.ndarray) -> List[FaceLandmarkSet]:
        """
        Args:
            frame: BGR image from OpenCV

        Returns:
            One list of normalized landmarks per detected face
        """
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        results = self._face_mesh.process(rgb)

        if not results.multi_face_landmarks:
            return []

        return [
            [Landmark(p.x, p.y, p.z) for p in face.landmark]
            for face in results.multi_face_landmarks
        ]

    def close(self):
        self._face_mesh.close()


class YoloObjectDetector:
    """ObjectDetector backed by an Ultralytics YOLO model"""

    def __init__(self, model_path: str = "yolov8n.pt", confidence: float = 0.5):
        self.confidence = confidence
        self.model = get_yolo_model(model_path)

    def detect(self, frame: np.ndarray) -> List[ObjectPrediction]:
        results = self.model.predict(frame, conf=self.confidence, verbose=False)

        predictions: List[ObjectPrediction] = []
        for result in results:
            if result.boxes is None:
                continue
            for box in result.boxes:
                cls_id = int(box.cls[0])
                predictions.append(ObjectPrediction(
                    label=self.model.names.get(cls_id, f"class_{cls_id}"),
                    confidence=float(box.conf[0]),
                    box=tuple(box.xyxy[0].tolist())
                ))

        return predictions


def load_face_landmarker(settings) -> MediaPipeFaceLandmarker:
    """Create the landmark capability or raise ProctorInitializationError"""
    try:
        return MediaPipeFaceLandmarker(
            max_num_faces=settings.MAX_NUM_FACES,
            min_detection_confidence=settings.MIN_DETECTION_CONFIDENCE,
            min_tracking_confidence=settings.MIN_TRACKING_CONFIDENCE
        )
    except Exception as e:
        logger.error(f"Failed to load face landmarker: {e}")
        raise ProctorInitializationError(f"Face landmarker unavailable: {e}") from e


def load_object_detector(settings) -> YoloObjectDetector:
    """Create the object capability or raise ProctorInitializationError"""
    try:
        return YoloObjectDetector(
            model_path=settings.YOLO_MODEL,
            confidence=settings.YOLO_CONFIDENCE
        )
    except Exception as e:
        logger.error(f"Failed to load YOLO model: {e}")
        raise ProctorInitializationError(f"Object detector unavailable: {e}") from e
