import asyncio
import logging
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict

from alignment import evaluate_alignment, fallback_verdict, no_pose_verdict
from errors import NoPoseDetected
from guidance_messages import DEFAULT_LOCALE
from models import AlignmentVerdict, CaptureMode, CaptureView

logger = logging.getLogger(__name__)


class MonitorState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    ALIGNED = "aligned"
    MISALIGNED = "misaligned"
    OVERRIDDEN = "overridden"


class CaptureStatus(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    mode: CaptureMode = CaptureMode.CAMERA
    has_permission: bool = False
    is_loading: bool = False


# IDLE -> CHECKING -> ALIGNED | MISALIGNED -> CHECKING -> ...
# any state -> OVERRIDDEN (terminal)
class AlignmentMonitor:
    def __init__(
        self,
        frame_source,
        detector,
        view: CaptureView = CaptureView.FRONTAL,
        poll_interval: float = 2.0,
        frame_timeout: float = 1.0,
        locale: str = DEFAULT_LOCALE,
        on_verdict: Optional[Callable[[AlignmentVerdict], None]] = None,
    ):
        self.frame_source = frame_source
        self.detector = detector
        self.view = CaptureView(view)
        self.poll_interval = poll_interval
        self.frame_timeout = frame_timeout
        self.locale = locale
        self.on_verdict = on_verdict

        self.status = CaptureStatus()
        self.state = MonitorState.IDLE
        self.latest_verdict: Optional[AlignmentVerdict] = None

        self._in_flight = False
        self._generation = 0
        self._timer: Optional[asyncio.Task] = None
        self._ticks: set[asyncio.Task] = set()
        self._grab: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def grab_pending(self) -> bool:
        """True while a frame grab abandoned by a timeout is still blocked in its thread."""
        return self._grab is not None and not self._grab.done()

    def polling_allowed(self) -> bool:
        return (
            self.status.mode is CaptureMode.CAMERA
            and self.status.has_permission
            and not self.status.is_loading
            and self.state is not MonitorState.OVERRIDDEN
        )

    def start(self) -> None:
        """Start the polling timer. Must be called from a running event loop."""
        if self.running:
            return
        self._timer = asyncio.create_task(self._run())
        logger.debug("Alignment polling started for %s view", self.view.value)

    def stop(self) -> None:
        """Cancel the timer; a check already in flight finishes but is discarded."""
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.latest_verdict = None
        if self.state is not MonitorState.OVERRIDDEN:
            self.state = MonitorState.IDLE

    def switch_view(self, view: CaptureView) -> None:
        was_running = self.running
        self.stop()
        self.view = CaptureView(view)
        if was_running:
            self.start()

    def override(self) -> None:
        """Operator skipped the guide; later checks no longer change anything."""
        logger.info("Alignment guide skipped by operator")
        self.state = MonitorState.OVERRIDDEN

    async def drain(self) -> None:
        """Wait for checks that are still in flight."""
        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

    async def _run(self) -> None:
        while True:
            if self.polling_allowed():
                task = asyncio.create_task(self.tick())
                self._ticks.add(task)
                task.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self.poll_interval)

    async def tick(self) -> Optional[AlignmentVerdict]:
        """Run one check. Returns None when the tick was skipped or its result discarded."""
        if self._in_flight:
            logger.debug("Previous alignment check still running, skipping tick")
            return None

        self._in_flight = True
        generation = self._generation
        view = self.view
        try:
            if self.state is not MonitorState.OVERRIDDEN:
                self.state = MonitorState.CHECKING
            verdict = await self._check_frame(view)
        finally:
            self._in_flight = False

        if generation != self._generation or self.state is MonitorState.OVERRIDDEN:
            logger.debug("Discarding alignment verdict from a stopped or overridden check")
            return None

        self.latest_verdict = verdict
        self.state = MonitorState.ALIGNED if verdict.aligned else MonitorState.MISALIGNED
        if self.on_verdict is not None:
            try:
                self.on_verdict(verdict)
            except Exception:
                logger.exception("Alignment verdict callback failed")
        return verdict

    async def _check_frame(self, view: CaptureView) -> AlignmentVerdict:
        # The camera handle is not thread-safe: never start a grab while an
        # earlier one is still blocked in its worker thread.
        if self.grab_pending:
            logger.warning("Previous frame grab still blocked, skipping camera read")
            return fallback_verdict(view, self.locale)

        try:
            self._grab = asyncio.ensure_future(asyncio.to_thread(self.frame_source.grab_frame))
            frame = await asyncio.wait_for(asyncio.shield(self._grab), timeout=self.frame_timeout)
            detection = await asyncio.to_thread(self.detector.detect, frame)
            return evaluate_alignment(
                detection.landmarks, detection.confidence, view, self.locale
            )
        except NoPoseDetected:
            return no_pose_verdict(view, self.locale)
        except asyncio.TimeoutError:
            logger.warning("Frame grab timed out after %.2fs", self.frame_timeout)
            return fallback_verdict(view, self.locale)
        except Exception as e:
            logger.warning("Alignment check failed: %s", e)
            return fallback_verdict(view, self.locale)
