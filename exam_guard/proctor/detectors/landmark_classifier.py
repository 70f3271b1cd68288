"""
Landmark Classifier - Geometric violation flags from face landmarks

Works on MediaPipe Face Mesh landmarks (468 points, 478 with refined irises)
in normalized image coordinates. No image data is needed: head roll, head
turn, gaze and face size are all derived from a handful of keypoints.
"""

import math
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Set

from ..types import FaceLandmarkSet, ViolationKind

logger = logging.getLogger(__name__)


# Face Mesh landmark indices
NOSE_TIP = 1
LEFT_EYE_OUTER = 33
LEFT_EYE_INNER = 133
RIGHT_EYE_INNER = 362
RIGHT_EYE_OUTER = 263
LEFT_IRIS = 468
RIGHT_IRIS = 473


@dataclass
class FaceMeasurements:
    """Raw geometry for one face, before thresholding"""
    roll: float
    turn_offset: Optional[float]
    left_gaze_offset: Optional[float]
    right_gaze_offset: Optional[float]
    width: float


def is_head_tilted(roll: float) -> bool:
    return abs(roll) > LandmarkClassifier.ROLL_THRESHOLD


def is_head_turned(turn_offset: Optional[float]) -> bool:
    return turn_offset is not None and abs(turn_offset) > LandmarkClassifier.TURN_THRESHOLD


def is_gaze_away(offset: Optional[float]) -> bool:
    return offset is not None and abs(offset) > LandmarkClassifier.GAZE_THRESHOLD


def is_face_out_of_frame(width: float) -> bool:
    return width < LandmarkClassifier.MIN_FACE_WIDTH or width > LandmarkClassifier.MAX_FACE_WIDTH


class LandmarkClassifier:
    """
    Turns one frame's landmark sets into raised violation kinds.

    Rules per face:
    - Head tilt: roll angle of the outer eye-corner line
    - Head turn: nose tip offset from the eye midpoint, in eye distances
    - Gaze: iris offset from each eye's midpoint, in eye widths
    - Visibility: landmark bounding-box width outside [0.1, 0.8]

    More than one face raises MULTIPLE_PEOPLE once. No face raises nothing.
    """

    # Calibration constants
    ROLL_THRESHOLD = 20.0       # degrees, strict
    TURN_THRESHOLD = 0.35       # eye distances
    GAZE_THRESHOLD = 0.6        # eye widths
    MIN_FACE_WIDTH = 0.1        # normalized, inclusive
    MAX_FACE_WIDTH = 0.8        # normalized, inclusive

    def classify(self, faces: Sequence[FaceLandmarkSet]) -> Set[ViolationKind]:
        """
        Classify all faces of one frame.

        Args:
            faces: One landmark set per detected face

        Returns:
            Set of raised violation kinds (empty if nothing is wrong)
        """
        raised: Set[ViolationKind] = set()

        if not faces:
            return raised

        if len(faces) > 1:
            raised.add(ViolationKind.MULTIPLE_PEOPLE)

        for face in faces:
            raised |= self.classify_face(face)

        return raised

    def classify_face(self, face: FaceLandmarkSet) -> Set[ViolationKind]:
        """Classify a single face"""
        m = self.measure(face)
        raised: Set[ViolationKind] = set()

        if is_head_tilted(m.roll):
            raised.add(ViolationKind.HEAD_TILT)
        if is_head_turned(m.turn_offset):
            raised.add(ViolationKind.HEAD_TURNED)
        if is_gaze_away(m.left_gaze_offset) or is_gaze_away(m.right_gaze_offset):
            raised.add(ViolationKind.GAZE_AWAY)
        if is_face_out_of_frame(m.width):
            raised.add(ViolationKind.FACE_VISIBILITY)

        if raised:
            logger.debug(
                f"Face flags {sorted(k.value for k in raised)}: roll={m.roll:.2f} "
                f"turn={m.turn_offset} gaze=({m.left_gaze_offset}, {m.right_gaze_offset}) "
                f"width={m.width:.3f}"
            )

        return raised

    def measure(self, face: FaceLandmarkSet) -> FaceMeasurements:
        """
        Compute the raw geometry for one face.

        Measurements that would divide by zero are returned as None.
        """
        nose = face[NOSE_TIP]
        left_outer = face[LEFT_EYE_OUTER]
        left_inner = face[LEFT_EYE_INNER]
        right_inner = face[RIGHT_EYE_INNER]
        right_outer = face[RIGHT_EYE_OUTER]

        dx = right_outer.x - left_outer.x
        dy = right_outer.y - left_outer.y
        roll = math.degrees(math.atan2(dy, dx))

        eye_distance = math.hypot(dx, dy)
        turn_offset = None
        if eye_distance > 0:
            eyes_mid_x = (left_outer.x + right_outer.x) / 2
            turn_offset = (nose.x - eyes_mid_x) / eye_distance

        left_gaze = right_gaze = None
        if len(face) > RIGHT_IRIS:
            left_gaze = self._gaze_offset(face[LEFT_IRIS], left_inner, left_outer)
            right_gaze = self._gaze_offset(face[RIGHT_IRIS], right_inner, right_outer)

        return FaceMeasurements(
            roll=roll,
            turn_offset=turn_offset,
            left_gaze_offset=left_gaze,
            right_gaze_offset=right_gaze,
            width=self.face_width(face),
        )

    @staticmethod
    def _gaze_offset(iris, inner, outer) -> Optional[float]:
        eye_width = abs(inner.x - outer.x)
        if eye_width == 0:
            return None
        eye_mid = (inner.x + outer.x) / 2
        return (iris.x - eye_mid) / eye_width

    @staticmethod
    def face_width(face: FaceLandmarkSet) -> float:
        """Bounding-box width over all landmarks"""
        xs: List[float] = [point.x for point in face]
        return max(xs) - min(xs)
