"""
exam-guard command line entry point

Runs one proctoring session against the local camera and microphone:

    python -m exam_guard --attempt-id 42 --duration 600
"""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from .config import settings
from .proctor import ProctorSession
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Monitor a test attempt for integrity violations")
    parser.add_argument("--attempt-id", required=True, help="Test attempt to report against")
    parser.add_argument("--duration", type=float, default=None,
                        help="Stop after this many seconds (default: until the stream ends or Ctrl+C)")
    parser.add_argument("--camera", type=int, default=None, help="Camera index override")
    parser.add_argument("--base-url", default=None, help="Report API base URL override")
    return parser


async def run_session(attempt_id: str, duration: Optional[float]) -> int:
    """Run a session until it ends; returns a process exit code"""
    errors: List[str] = []

    session = ProctorSession.from_settings(attempt_id, settings, on_error=errors.append)
    if not await session.start():
        print(errors[0] if errors else "Proctoring could not start", file=sys.stderr)
        return 1

    try:
        if duration is not None:
            await asyncio.wait_for(session.wait(), timeout=duration)
        else:
            await session.wait()
    except asyncio.TimeoutError:
        logger.info(f"Duration of {duration}s reached")
    finally:
        result = await session.stop()

    print(f"Session {result['session_id']} for attempt {attempt_id}")
    for kind, count in result["counts"].items():
        print(f"  {kind:<16} {count}")
    print(f"  frames processed: {result['frames_processed']}, "
          f"reports sent: {result['reports_submitted']}, failed: {result['reports_failed']}")
    return 0


def main(argv: Optional[List[str]] = None):
    args = build_parser().parse_args(argv)

    if args.camera is not None:
        settings.CAMERA_INDEX = args.camera
    if args.base_url:
        settings.REPORT_API_BASE_URL = args.base_url

    setup_logging(
        service_name=settings.APP_NAME,
        level="DEBUG" if settings.DEBUG else settings.LOG_LEVEL,
        log_to_file=settings.LOG_TO_FILE,
        log_dir=settings.LOG_DIR
    )

    try:
        code = asyncio.run(run_session(args.attempt_id, args.duration))
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


if __name__ == "__main__":
    main()
