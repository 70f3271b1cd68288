"""Model loading utilities"""

from .model_loader import (
    MediaPipeFaceLandmarker,
    YoloObjectDetector,
    load_face_landmarker,
    load_object_detector
)

__all__ = [
    "MediaPipeFaceLandmarker",
    "YoloObjectDetector",
    "load_face_landmarker",
    "load_object_detector"
]
