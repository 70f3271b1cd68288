"""
Proctoring Logger - Logs proctoring events
"""

import logging
from typing import Dict, Any, Optional

logger = logging.getLogger(__name__)


def log_proctor_event(
    session_id: Optional[str],
    event_type: str,
    details: Optional[Dict[str, Any]] = None,
    level: str = "info"
):
    """
    Log a proctoring event.

    Args:
        session_id: Proctoring session ID
        event_type: Type of event (session_start, violation, report_failed, ...)
        details: Optional event details
        level: Log level (debug, info, warning, error)
    """
    message = f"[PROCTOR] session={session_id} event={event_type}"

    if details:
        detail_str = " ".join(f"{k}={v}" for k, v in details.items())
        message += f" {detail_str}"

    if level == "debug":
        logger.debug(message)
    elif level == "warning":
        logger.warning(message)
    elif level == "error":
        logger.error(message)
    else:
        logger.info(message)


def log_session_start(session_id: str, attempt_id: Any):
    """Log session start event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_start",
        details={"attempt_id": attempt_id}
    )


def log_session_end(session_id: str, counts: Dict[str, int], frames: int):
    """Log session end event"""
    log_proctor_event(
        session_id=session_id,
        event_type="session_end",
        details={
            **counts,
            "frames_processed": frames
        }
    )


def log_violation_started(session_id: Optional[str], kind: str, count: int):
    """Log the start of a new violation episode"""
    log_proctor_event(
        session_id=session_id,
        event_type="violation",
        details={
            "kind": kind,
            "count": count
        },
        level="warning"
    )


def log_report_submitted(session_id: Optional[str], attempt_id: Any, payload: Dict[str, int]):
    """Log a successful session report"""
    log_proctor_event(
        session_id=session_id,
        event_type="report_submitted",
        details={"attempt_id": attempt_id, **payload},
        level="debug"
    )


def log_report_failed(session_id: Optional[str], attempt_id: Any, error: Exception):
    """Log a failed session report"""
    log_proctor_event(
        session_id=session_id,
        event_type="report_failed",
        details={
            "attempt_id": attempt_id,
            "error": error
        },
        level="warning"
    )
