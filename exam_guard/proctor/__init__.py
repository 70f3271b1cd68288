"""
exam-guard Proctoring Module

Enforces exam integrity during an attempt by detecting:
- Head turned away or tilted
- Gaze diversion
- Multiple people in view
- Face too close to or too far from the camera
- Mobile phones
- Talking (sustained speech or repeated short bursts)

Only cumulative violation counts leave the device.
"""

from .session import ProctorSession
from .types import SessionReportSnapshot, ViolationKind

__all__ = ["ProctorSession", "SessionReportSnapshot", "ViolationKind"]
