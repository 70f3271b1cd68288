"""Detector modules for proctoring"""

from .landmark_classifier import LandmarkClassifier
from .object_detector import ObjectPresenceDetector
from .audio_detector import AudioActivityDetector

__all__ = [
    "LandmarkClassifier",
    "ObjectPresenceDetector",
    "AudioActivityDetector"
]
