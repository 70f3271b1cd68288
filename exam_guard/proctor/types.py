"""
Proctoring Types - Shared data model for the violation pipeline
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Protocol, Sequence, Tuple

import numpy as np


class ViolationKind(str, Enum):
    """Recognised violation categories, in enumeration order"""
    HEAD_TURNED = "HEAD_TURNED"
    HEAD_TILT = "HEAD_TILT"
    GAZE_AWAY = "GAZE_AWAY"
    MULTIPLE_PEOPLE = "MULTIPLE_PEOPLE"
    FACE_VISIBILITY = "FACE_VISIBILITY"
    MOBILE_DETECTED = "MOBILE_DETECTED"
    AUDIO_DETECTED = "AUDIO_DETECTED"


# Field names expected by the session-report endpoint
REPORT_FIELD_NAMES: Dict[ViolationKind, str] = {
    ViolationKind.HEAD_TURNED: "headsTurned",
    ViolationKind.HEAD_TILT: "headTilts",
    ViolationKind.GAZE_AWAY: "lookAways",
    ViolationKind.MULTIPLE_PEOPLE: "multiplePeople",
    ViolationKind.FACE_VISIBILITY: "faceVisibilityIssues",
    ViolationKind.MOBILE_DETECTED: "mobileDetected",
    ViolationKind.AUDIO_DETECTED: "audioIncidents",
}


class Landmark(NamedTuple):
    """Normalized keypoint (0..1 image coordinates)"""
    x: float
    y: float
    z: float = 0.0


FaceLandmarkSet = Sequence[Landmark]


class ObjectPrediction(NamedTuple):
    """Single object-detector prediction"""
    label: str
    confidence: float
    box: Tuple[float, float, float, float]


class FaceLandmarkDetector(Protocol):
    """Multi-face landmark capability (one landmark set per detected face)"""

    def detect(self, frame: np.ndarray) -> List[FaceLandmarkSet]:
        ...


class ObjectDetector(Protocol):
    """General object-detection capability"""

    def detect(self, frame: np.ndarray) -> List[ObjectPrediction]:
        ...


class SpectrumSource(Protocol):
    """Pull-based byte-scaled frequency spectrum of the live microphone"""

    sample_rate: int
    fft_size: int

    def get_byte_frequency_data(self) -> np.ndarray:
        ...


@dataclass(frozen=True)
class AlertState:
    """What the UI shows for the current tick"""
    violating: bool
    label: str


@dataclass(frozen=True)
class SessionReportSnapshot:
    """
    Immutable copy of the seven violation counters for one attempt.

    Built on the event-loop thread at transmission time, so the reporting
    timer never reads the aggregator's live state.
    """
    attempt_id: Any
    counts: Mapping[ViolationKind, int] = field(default_factory=dict)

    def __post_init__(self):
        frozen = {kind: int(self.counts.get(kind, 0)) for kind in ViolationKind}
        object.__setattr__(self, "counts", MappingProxyType(frozen))

    def to_payload(self) -> Dict[str, int]:
        """Counts keyed by the endpoint's field names"""
        return {REPORT_FIELD_NAMES[kind]: count for kind, count in self.counts.items()}

    def dominates(self, other: Optional["SessionReportSnapshot"]) -> bool:
        """True if every counter is >= the other snapshot's counter"""
        if other is None:
            return True
        return all(self.counts[kind] >= other.counts[kind] for kind in ViolationKind)
