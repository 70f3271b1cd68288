"""
Violation Aggregator - Edge-triggered violation counting for a session
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple
from types import MappingProxyType

from ..types import AlertState, SessionReportSnapshot, ViolationKind
from ..utils.logging import log_violation_started

logger = logging.getLogger(__name__)


# Alert label precedence when several kinds are active at once (first wins)
ALERT_PRIORITY: Tuple[ViolationKind, ...] = (
    ViolationKind.AUDIO_DETECTED,
    ViolationKind.MOBILE_DETECTED,
    ViolationKind.FACE_VISIBILITY,
    ViolationKind.MULTIPLE_PEOPLE,
    ViolationKind.GAZE_AWAY,
    ViolationKind.HEAD_TILT,
    ViolationKind.HEAD_TURNED,
)

ALERT_LABELS: Dict[ViolationKind, str] = {
    kind: kind.value.replace("_", " ") for kind in ViolationKind
}
ALERT_LABELS[ViolationKind.AUDIO_DETECTED] = "SPEECH DETECTED"
ALERT_LABELS[ViolationKind.MOBILE_DETECTED] = "PHONE DETECTED"


class ViolationAggregator:
    """
    Turns per-tick raised-kind sets into cumulative violation counts.

    Each kind is a two-state machine. A count is incremented only on the
    INACTIVE -> ACTIVE transition, so a condition that stays raised for many
    ticks is one violation. Any kind not raised on a tick goes INACTIVE.
    """

    def __init__(self, session_id: Optional[str] = None):
        """
        Args:
            session_id: Used only to tag log lines
        """
        self.session_id = session_id
        self._active: Dict[ViolationKind, bool] = {kind: False for kind in ViolationKind}
        self._counts: Dict[ViolationKind, int] = {kind: 0 for kind in ViolationKind}
        self.tick_count = 0

    def update(self, raised: Iterable[ViolationKind]) -> AlertState:
        """
        Apply one tick.

        Args:
            raised: Kinds raised by the detectors on this tick

        Returns:
            Alert state after the tick
        """
        raised = set(raised)
        self.tick_count += 1

        for kind in ViolationKind:
            if kind in raised:
                if not self._active[kind]:
                    self._active[kind] = True
                    self._counts[kind] += 1
                    log_violation_started(self.session_id, kind.value, self._counts[kind])
            else:
                self._active[kind] = False

        return self.alert

    @property
    def counts(self) -> Mapping[ViolationKind, int]:
        """Read-only copy of the current counts"""
        return MappingProxyType(dict(self._counts))

    def is_active(self, kind: ViolationKind) -> bool:
        return self._active[kind]

    @property
    def violating(self) -> bool:
        return any(self._active.values())

    @property
    def label(self) -> str:
        for kind in ALERT_PRIORITY:
            if self._active[kind]:
                return ALERT_LABELS[kind]
        return ""

    @property
    def alert(self) -> AlertState:
        return AlertState(violating=self.violating, label=self.label)

    def snapshot(self, attempt_id: Any) -> SessionReportSnapshot:
        """Immutable count snapshot for reporting"""
        return SessionReportSnapshot(attempt_id=attempt_id, counts=dict(self._counts))

    def get_summary(self) -> Dict[str, int]:
        """Grouped counts for a compact status display"""
        c = self._counts
        return {
            "head": c[ViolationKind.HEAD_TURNED] + c[ViolationKind.HEAD_TILT],
            "gaze": c[ViolationKind.GAZE_AWAY],
            "people": c[ViolationKind.MULTIPLE_PEOPLE],
            "visibility": c[ViolationKind.FACE_VISIBILITY],
            "mobile": c[ViolationKind.MOBILE_DETECTED],
            "audio": c[ViolationKind.AUDIO_DETECTED],
        }
