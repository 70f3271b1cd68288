"""
Proctor Session - Owns everything that lives for one monitored attempt

The session is created with a capture stream and an attempt ID. Starting it
loads the inference capabilities, builds a fresh aggregator and runs the
frame loop and the reporting timer as two asyncio tasks. Stopping it tears
them down and drops the aggregator; only the reported counts survive. The
session also tears itself down when the capture stream ends.
"""

import uuid
import asyncio
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .detectors import AudioActivityDetector, LandmarkClassifier, ObjectPresenceDetector
from .errors import ProctorInitializationError
from .metrics import ViolationAggregator
from .reporting import ReportingChannel, SessionReportClient
from .scheduler import FrameScheduler, monotonic_ms
from .types import AlertState, FaceLandmarkDetector, ObjectDetector, SessionReportSnapshot
from .utils.logging import log_session_end, log_session_start

logger = logging.getLogger(__name__)


class ProctorSession:
    """
    Manages a single proctoring session.

    Lifetime is tied to the capture stream: state is created in start() once
    the stream is acquired and discarded in stop().
    """

    def __init__(
        self,
        attempt_id: Any,
        capture,
        report_client: SessionReportClient,
        landmark_loader: Callable[[], FaceLandmarkDetector],
        object_loader: Callable[[], ObjectDetector],
        on_error: Optional[Callable[[str], None]] = None,
        session_id: Optional[str] = None,
        report_interval: float = ReportingChannel.DEFAULT_INTERVAL_SECONDS,
        scan_interval_ms: float = ObjectPresenceDetector.DEFAULT_SCAN_INTERVAL_MS,
        flush_on_stop: bool = False,
        clock: Callable[[], float] = monotonic_ms
    ):
        """
        Initialize a proctoring session.

        Args:
            attempt_id: ID of the test attempt being proctored
            capture: Capture stream (open/stop/read_frame, `analyser` spectrum)
            report_client: Transport for session reports (owned by the session)
            landmark_loader: Builds the face-landmark capability
            object_loader: Builds the object-detection capability
            on_error: Host callback for unrecoverable setup failures
            session_id: Optional custom session ID (auto-generated if not provided)
            report_interval: Seconds between session reports
            scan_interval_ms: Minimum milliseconds between object scans
            flush_on_stop: Submit one last report during stop()
            clock: Millisecond clock shared by the detectors
        """
        self.id = session_id or f"PRC_{uuid.uuid4().hex[:6].upper()}"
        self.attempt_id = attempt_id
        self.capture = capture
        self.report_client = report_client
        self.on_error = on_error
        self.report_interval = report_interval
        self.scan_interval_ms = scan_interval_ms
        self.flush_on_stop = flush_on_stop

        self._landmark_loader = landmark_loader
        self._object_loader = object_loader
        self._clock = clock

        self.started_at: Optional[datetime] = None
        self.is_active = False
        self._error_reported = False

        self.aggregator: Optional[ViolationAggregator] = None
        self.scheduler: Optional[FrameScheduler] = None
        self.reporting: Optional[ReportingChannel] = None
        self._landmark_detector: Optional[FaceLandmarkDetector] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._stopping: Optional[asyncio.Task] = None
        self.final_result: Dict[str, Any] = {}

    @classmethod
    def from_settings(
        cls,
        attempt_id: Any,
        settings,
        on_error: Optional[Callable[[str], None]] = None
    ) -> "ProctorSession":
        """Session wired to the real camera, microphone, models and backend"""
        from .capture import CaptureStream
        from .models import load_face_landmarker, load_object_detector

        return cls(
            attempt_id=attempt_id,
            capture=CaptureStream.from_settings(settings),
            report_client=SessionReportClient.from_settings(settings),
            landmark_loader=lambda: load_face_landmarker(settings),
            object_loader=lambda: load_object_detector(settings),
            on_error=on_error,
            report_interval=settings.REPORT_INTERVAL_SECONDS,
            scan_interval_ms=settings.OBJECT_SCAN_INTERVAL_MS,
            flush_on_stop=settings.REPORT_FLUSH_ON_STOP
        )

    async def start(self) -> bool:
        """
        Acquire the stream, load capabilities and start both tasks.

        Returns:
            False if setup failed (the error callback has been notified)
        """
        if self.is_active:
            return True

        try:
            await asyncio.to_thread(self.capture.open)
            landmark_detector = await asyncio.to_thread(self._landmark_loader)
            object_detector = await asyncio.to_thread(self._object_loader)
        except Exception as e:
            logger.error(f"Proctoring setup failed for session {self.id}: {e}")
            self.capture.stop()
            await self.report_client.aclose()
            self._report_error(e)
            return False

        self._landmark_detector = landmark_detector
        self.aggregator = ViolationAggregator(session_id=self.id)
        self.scheduler = FrameScheduler(
            landmark_detector=landmark_detector,
            object_detector=ObjectPresenceDetector(object_detector, self.scan_interval_ms),
            audio_detector=AudioActivityDetector(
                sample_rate=self.capture.analyser.sample_rate,
                fft_size=self.capture.analyser.fft_size
            ),
            aggregator=self.aggregator,
            spectrum_source=self.capture.analyser,
            classifier=LandmarkClassifier(),
            clock=self._clock
        )
        self.reporting = ReportingChannel(
            client=self.report_client,
            snapshot_provider=self.snapshot,
            interval=self.report_interval,
            session_id=self.id
        )

        self.started_at = datetime.utcnow()
        self.is_active = True
        log_session_start(self.id, self.attempt_id)

        self._stopping = None
        self._loop_task = asyncio.ensure_future(self._run_loop(self.scheduler))
        self.reporting.start()
        return True

    def _report_error(self, error: Exception):
        if self._error_reported or self.on_error is None:
            return
        self._error_reported = True
        self.on_error(ProctorInitializationError.USER_MESSAGE)

    def snapshot(self) -> SessionReportSnapshot:
        """Immutable copy of the current counts"""
        if self.aggregator is None:
            raise RuntimeError("Session is not active")
        return self.aggregator.snapshot(self.attempt_id)

    @property
    def alert(self) -> AlertState:
        if self.aggregator is None:
            return AlertState(violating=False, label="")
        return self.aggregator.alert

    async def _run_loop(self, scheduler: FrameScheduler):
        try:
            await scheduler.run(self.capture)
        except Exception as e:
            logger.error(f"Frame loop for session {self.id} failed: {e}")

        if self.is_active and self._stopping is None:
            logger.info(f"Capture stream ended for session {self.id}, tearing down")
            self._stopping = asyncio.ensure_future(self._teardown())

    async def wait(self):
        """Wait until the capture stream ends and the session is torn down"""
        if self._loop_task is not None:
            await asyncio.wait({self._loop_task})
        if self._stopping is not None:
            await asyncio.wait({self._stopping})

    async def stop(self) -> Dict[str, Any]:
        """
        Tear the session down. Safe to call more than once.

        Order: stop capture, cancel the frame loop, cancel the reporting
        timer. Late inference results are discarded.

        Returns:
            Final counts and session summary ({} if never started)
        """
        if self._stopping is None:
            if not self.is_active:
                return self.final_result
            self._stopping = asyncio.ensure_future(self._teardown())
        return await asyncio.shield(self._stopping)

    async def _teardown(self) -> Dict[str, Any]:
        self.is_active = False

        self.capture.stop()

        self.scheduler.stop()
        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        await self.reporting.stop()
        if self.flush_on_stop:
            await self.reporting.report_once()
        await self.report_client.aclose()

        close = getattr(self._landmark_detector, "close", None)
        if close is not None:
            try:
                close()
            except Exception as e:
                logger.warning(f"Error closing landmark detector: {e}")

        counts = {kind.value: count for kind, count in self.aggregator.counts.items()}
        frames = self.scheduler.frame_count
        log_session_end(self.id, counts, frames)

        result = {
            "session_id": self.id,
            "attempt_id": self.attempt_id,
            "counts": counts,
            "summary": self.aggregator.get_summary(),
            "frames_processed": frames,
            "reports_submitted": self.reporting.submitted_count,
            "reports_failed": self.reporting.failed_count,
            "duration_seconds": (datetime.utcnow() - self.started_at).total_seconds()
        }

        self.final_result = result

        # Session state is not persisted
        self.aggregator = None
        self.scheduler = None
        self.reporting = None
        self._landmark_detector = None

        logger.info(f"Session {self.id} stopped: {counts}")
        return result
