"""
Reporting Channel - Periodic session-report submission

Every interval the channel copies the aggregator's counts into an immutable
snapshot and submits it. There is no retry queue: counts are cumulative, so
the next tick carries everything a failed tick would have.
"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import BaseModel, Field

from .errors import ReportSubmissionError
from .types import SessionReportSnapshot
from .utils.logging import log_report_failed, log_report_submitted

logger = logging.getLogger(__name__)


# ============== Wire Model ==============

class SessionReportUpdate(BaseModel):
    """Payload accepted by the session-report endpoint"""
    headsTurned: int = Field(0, ge=0)
    headTilts: int = Field(0, ge=0)
    lookAways: int = Field(0, ge=0)
    multiplePeople: int = Field(0, ge=0)
    faceVisibilityIssues: int = Field(0, ge=0)
    mobileDetected: int = Field(0, ge=0)
    audioIncidents: int = Field(0, ge=0)

    @classmethod
    def from_snapshot(cls, snapshot: SessionReportSnapshot) -> "SessionReportUpdate":
        return cls(**snapshot.to_payload())


# ============== Transport ==============

class SessionReportClient:
    """HTTP client for the attempt-scoped session-report endpoint"""

    ENDPOINT = "/api/test-attempts/{attempt_id}/session-report"

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Args:
            base_url: Backend base URL
            token: Optional bearer token
            timeout: Request timeout in seconds
            transport: Custom httpx transport (tests)
        """
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=timeout,
            transport=transport
        )

    @classmethod
    def from_settings(cls, settings) -> "SessionReportClient":
        return cls(
            base_url=settings.REPORT_API_BASE_URL,
            token=settings.REPORT_API_TOKEN,
            timeout=settings.REPORT_TIMEOUT_SECONDS
        )

    async def submit(self, snapshot: SessionReportSnapshot) -> Dict[str, Any]:
        """
        Send one snapshot.

        Raises:
            ReportSubmissionError: on transport failure or non-2xx status
        """
        payload = SessionReportUpdate.from_snapshot(snapshot).model_dump()
        path = self.ENDPOINT.format(attempt_id=snapshot.attempt_id)

        try:
            response = await self._client.put(path, json=payload)
        except httpx.HTTPError as e:
            raise ReportSubmissionError(f"Session report request failed: {e}") from e

        if response.status_code >= 300:
            raise ReportSubmissionError(
                f"Session report rejected: {response.status_code} - {response.text}",
                status_code=response.status_code
            )

        return payload

    async def aclose(self):
        await self._client.aclose()


# ============== Channel ==============

class ReportingChannel:
    """Fixed-interval, best-effort reporter of count snapshots"""

    DEFAULT_INTERVAL_SECONDS = 30.0

    def __init__(
        self,
        client: SessionReportClient,
        snapshot_provider: Callable[[], SessionReportSnapshot],
        interval: float = DEFAULT_INTERVAL_SECONDS,
        session_id: Optional[str] = None
    ):
        """
        Args:
            client: Transport for snapshots
            snapshot_provider: Returns a fresh immutable snapshot
            interval: Seconds between submissions
            session_id: Used only to tag log lines
        """
        self.client = client
        self.snapshot_provider = snapshot_provider
        self.interval = interval
        self.session_id = session_id

        self._task: Optional[asyncio.Task] = None
        self.last_submitted: Optional[SessionReportSnapshot] = None
        self.submitted_count = 0
        self.failed_count = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        """Start the timer task on the running event loop"""
        if self.running:
            return
        self._task = asyncio.ensure_future(self._run())

    async def _run(self):
        # Deadlines are fixed multiples of the interval; a submission that
        # overruns its slot fires the next one immediately without catching up.
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self.interval
        while True:
            await asyncio.sleep(max(0.0, next_at - loop.time()))
            await self.report_once()
            next_at = max(next_at + self.interval, loop.time())

    async def report_once(self) -> bool:
        """
        Submit the current snapshot. Never raises.

        Returns:
            True if the backend accepted it
        """
        snapshot = self.snapshot_provider()

        try:
            payload = await self.client.submit(snapshot)
        except Exception as e:
            self.failed_count += 1
            log_report_failed(self.session_id, snapshot.attempt_id, e)
            return False

        if not snapshot.dominates(self.last_submitted):
            logger.error(f"Counts decreased between reports for attempt {snapshot.attempt_id}")

        self.last_submitted = snapshot
        self.submitted_count += 1
        log_report_submitted(self.session_id, snapshot.attempt_id, payload)
        return True

    async def stop(self):
        """Cancel the timer. An in-flight submission is abandoned."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
