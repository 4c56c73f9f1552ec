# Usage: live_guidance.py [frontal|sagittal] [camera-index]

import asyncio
import logging
import sys

from alignment_monitor import AlignmentMonitor
from frame_source import CameraFrameSource
from models import AlignmentVerdict, CaptureView
from pose_extractor import PoseDetector
from settings import configure_logging, load_settings

logger = logging.getLogger("live_guidance")


def _log_verdict(verdict: AlignmentVerdict) -> None:
    if verdict.aligned:
        logger.info("ALIGNED (confidence %.2f): %s", verdict.confidence, verdict.message)
    else:
        logger.info("%s: %s", verdict.reason.value, verdict.message)


async def run(view: CaptureView, device: int) -> None:
    settings = load_settings()
    with CameraFrameSource(device) as camera, PoseDetector(settings.model_path) as detector:
        monitor = AlignmentMonitor(
            camera,
            detector,
            view=view,
            poll_interval=settings.poll_interval,
            frame_timeout=settings.frame_timeout,
            locale=settings.locale,
            on_verdict=_log_verdict,
        )
        monitor.status.has_permission = True
        monitor.start()
        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            monitor.stop()
            await monitor.drain()


if __name__ == "__main__":
    configure_logging(load_settings().log_level)
    view = CaptureView(sys.argv[1]) if len(sys.argv) >= 2 else CaptureView.FRONTAL
    device = int(sys.argv[2]) if len(sys.argv) >= 3 else 0
    try:
        asyncio.run(run(view, device))
    except KeyboardInterrupt:
        logger.info("Stopped")
