"""
Tests for ProctorSession

Setup failure reporting, lifecycle and teardown.
"""

import asyncio
import threading

import httpx
import pytest

from exam_guard.config import Settings
from exam_guard.proctor import ProctorSession
from exam_guard.proctor.errors import ProctorInitializationError
from exam_guard.proctor.reporting import SessionReportClient
from exam_guard.proctor.types import ViolationKind

from conftest import FakeCapture, FakeLandmarkDetector, FakeObjectDetector, build_face


def make_session(capture=None, landmarks=None, landmark_loader=None, requests=None, **kwargs):
    requests = requests if requests is not None else []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    landmarks = landmarks or FakeLandmarkDetector([[build_face(nose_shift=0.5)]])
    errors = []
    session = ProctorSession(
        attempt_id=77,
        capture=capture or FakeCapture(frames=3),
        report_client=SessionReportClient(
            base_url="http://backend.test",
            transport=httpx.MockTransport(handler)
        ),
        landmark_loader=landmark_loader or (lambda: landmarks),
        object_loader=lambda: FakeObjectDetector(),
        on_error=errors.append,
        **kwargs
    )
    return session, errors


class TestSessionSetup:

    @pytest.mark.asyncio
    async def test_model_failure_reported_once(self):
        def broken_loader():
            raise ProctorInitializationError("Face landmarker unavailable")

        capture = FakeCapture(frames=3)
        session, errors = make_session(capture=capture, landmark_loader=broken_loader)

        assert await session.start() is False
        assert await session.start() is False

        assert errors == [ProctorInitializationError.USER_MESSAGE]
        assert session.is_active is False
        assert capture.stopped is True

    @pytest.mark.asyncio
    async def test_device_failure_reported(self):
        capture = FakeCapture(open_error=ProctorInitializationError("Camera 0 could not be opened"))
        session, errors = make_session(capture=capture)

        assert await session.start() is False
        assert errors == [ProctorInitializationError.USER_MESSAGE]

    @pytest.mark.asyncio
    async def test_state_created_on_start(self):
        session, _ = make_session()
        assert session.aggregator is None
        assert session.alert.violating is False

        assert await session.start() is True
        assert session.aggregator is not None
        await session.stop()


class TestSessionLifecycle:

    @pytest.mark.asyncio
    async def test_runs_until_stream_ends(self):
        session, errors = make_session(capture=FakeCapture(frames=4))
        await session.start()
        await asyncio.wait_for(session.wait(), timeout=2)

        result = await session.stop()

        assert result["frames_processed"] == 4
        assert result["counts"][ViolationKind.HEAD_TURNED.value] == 1
        assert result["summary"]["head"] == 1
        assert errors == []

    @pytest.mark.asyncio
    async def test_stop_discards_state(self):
        landmarks = FakeLandmarkDetector()
        capture = FakeCapture(frames=10**6)
        session, _ = make_session(capture=capture, landmarks=landmarks)
        await session.start()
        await asyncio.sleep(0.05)

        result = await session.stop()

        assert capture.stopped is True
        assert landmarks.closed is True
        assert session.is_active is False
        assert session.aggregator is None
        with pytest.raises(RuntimeError):
            session.snapshot()
        assert await session.stop() == result

    @pytest.mark.asyncio
    async def test_periodic_reports(self):
        requests = []
        session, _ = make_session(
            capture=FakeCapture(frames=10**6),
            requests=requests,
            report_interval=0.02
        )
        await session.start()
        await asyncio.sleep(0.1)
        result = await session.stop()

        assert len(requests) >= 2
        assert all(r.url.path == "/api/test-attempts/77/session-report" for r in requests)
        assert result["reports_submitted"] >= 2

    @pytest.mark.asyncio
    async def test_flush_on_stop(self):
        requests = []
        session, _ = make_session(requests=requests, flush_on_stop=True)
        await session.start()
        await asyncio.wait_for(session.wait(), timeout=2)
        await session.stop()

        assert len(requests) == 1


class TestSessionTeardown:

    @pytest.mark.asyncio
    async def test_stream_end_tears_down(self):
        requests = []
        capture = FakeCapture(frames=2)
        session, _ = make_session(capture=capture, requests=requests, report_interval=0.02)
        await session.start()
        reporting = session.reporting

        await asyncio.wait_for(session.wait(), timeout=2)
        sent = len(requests)
        await asyncio.sleep(0.1)

        assert capture.stopped is True
        assert reporting.running is False
        assert session.is_active is False
        assert len(requests) == sent
        assert session.final_result["frames_processed"] == 2
        assert await session.stop() == session.final_result

    @pytest.mark.asyncio
    async def test_teardown_order(self):
        capture = FakeCapture(frames=10**6)
        session, _ = make_session(capture=capture)
        await session.start()

        scheduler_stop = session.scheduler.stop
        reporting_stop = session.reporting.stop

        def stop_loop():
            capture.events.append("loop_stopped")
            scheduler_stop()

        async def stop_timer():
            capture.events.append("timer_stopped")
            await reporting_stop()

        session.scheduler.stop = stop_loop
        session.reporting.stop = stop_timer

        await session.stop()

        assert capture.events == ["capture_stopped", "loop_stopped", "timer_stopped"]

    @pytest.mark.asyncio
    async def test_concurrent_stops_share_one_teardown(self):
        capture = FakeCapture(frames=10**6)
        session, _ = make_session(capture=capture)
        await session.start()

        first, second = await asyncio.gather(session.stop(), session.stop())

        assert first == second
        assert capture.events == ["capture_stopped"]

    @pytest.mark.asyncio
    async def test_models_load_off_the_event_loop(self):
        loader_threads = []
        landmarks = FakeLandmarkDetector()

        def landmark_loader():
            loader_threads.append(threading.current_thread())
            return landmarks

        session, _ = make_session(landmark_loader=landmark_loader)
        assert await session.start() is True
        await session.stop()

        assert loader_threads
        assert loader_threads[0] is not threading.current_thread()


class TestSettings:

    def test_defaults(self):
        settings = Settings()
        assert settings.MAX_NUM_FACES == 4
        assert settings.OBJECT_SCAN_INTERVAL_MS == 500
        assert settings.REPORT_INTERVAL_SECONDS == 30.0

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("REPORT_INTERVAL_SECONDS", "5")
        monkeypatch.setenv("REPORT_API_TOKEN", "abc")
        settings = Settings()

        assert settings.REPORT_INTERVAL_SECONDS == 5.0
        assert settings.REPORT_API_TOKEN == "abc"
