import asyncio
import threading

import pytest
from pydantic import ValidationError

from alignment_monitor import AlignmentMonitor, CaptureStatus, MonitorState
from errors import FrameNotReady, NoPoseDetected
from models import AlignmentReason, CaptureMode, CaptureView, PoseLandmark


class FakeCamera:
    def __init__(self, error=None, gate=None):
        self.error = error
        self.gate = gate
        self.grabs = 0

    def grab_frame(self):
        self.grabs += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return "frame"


class CountingCamera:
    def __init__(self, gate):
        self.gate = gate
        self.lock = threading.Lock()
        self.active = 0
        self.peak = 0
        self.grabs = 0

    def grab_frame(self):
        with self.lock:
            self.grabs += 1
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            self.gate.wait(5)
            return "frame"
        finally:
            with self.lock:
                self.active -= 1


class FakeDetector:
    def __init__(self, detection=None, error=None, gate=None):
        self.detection = detection
        self.error = error
        self.gate = gate
        self.calls = 0

    def detect(self, frame):
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.detection


async def _wait_until(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.005)


def test_aligned_tick_updates_state_and_notifies(frontal_detection):
    seen = []
    monitor = AlignmentMonitor(
        FakeCamera(), FakeDetector(frontal_detection), on_verdict=seen.append
    )

    verdict = asyncio.run(monitor.tick())

    assert verdict.aligned is True
    assert verdict.confidence == 0.9
    assert monitor.state is MonitorState.ALIGNED
    assert monitor.latest_verdict == verdict
    assert seen == [verdict]


def test_misaligned_tick(frontal_detection):
    landmarks = list(frontal_detection.landmarks)
    idx = PoseLandmark.LEFT_HIP
    landmarks[idx] = landmarks[idx].model_copy(update={"y": 0.65})
    detection = frontal_detection.model_copy(update={"landmarks": tuple(landmarks)})
    monitor = AlignmentMonitor(FakeCamera(), FakeDetector(detection))

    verdict = asyncio.run(monitor.tick())

    assert verdict.reason is AlignmentReason.HIPS_UNEVEN
    assert monitor.state is MonitorState.MISALIGNED


def test_no_pose_gives_generic_verdict():
    monitor = AlignmentMonitor(FakeCamera(), FakeDetector(error=NoPoseDetected("empty")))

    verdict = asyncio.run(monitor.tick())

    assert verdict.reason is AlignmentReason.NO_POSE
    assert verdict.confidence is None


@pytest.mark.parametrize(
    "camera, detector",
    [
        (FakeCamera(error=FrameNotReady("zero size")), FakeDetector()),
        (FakeCamera(), FakeDetector(error=RuntimeError("gpu lost"))),
    ],
)
def test_failures_degrade_to_fallback(camera, detector):
    monitor = AlignmentMonitor(camera, detector, view=CaptureView.SAGITTAL)

    verdict = asyncio.run(monitor.tick())

    assert verdict.aligned is False
    assert verdict.confidence is None
    assert verdict.reason is AlignmentReason.CHECK_FAILED
    assert monitor.state is MonitorState.MISALIGNED
    assert monitor.in_flight is False


def test_stalled_frame_grab_times_out(frontal_detection):
    gate = threading.Event()
    detector = FakeDetector(frontal_detection)
    monitor = AlignmentMonitor(FakeCamera(gate=gate), detector, frame_timeout=0.05)

    async def scenario():
        try:
            return await monitor.tick()
        finally:
            gate.set()

    verdict = asyncio.run(scenario())

    assert verdict.reason is AlignmentReason.CHECK_FAILED
    assert detector.calls == 0


def test_stalled_camera_is_never_read_twice_at_once(frontal_detection):
    gate = threading.Event()
    camera = CountingCamera(gate)
    detector = FakeDetector(frontal_detection)
    monitor = AlignmentMonitor(camera, detector, frame_timeout=0.05)

    async def scenario():
        try:
            verdicts = [await monitor.tick() for _ in range(4)]
            assert monitor.grab_pending is True
        finally:
            gate.set()
        await _wait_until(lambda: not monitor.grab_pending)
        return verdicts, await monitor.tick()

    verdicts, recovered = asyncio.run(scenario())

    assert [v.reason for v in verdicts] == [AlignmentReason.CHECK_FAILED] * 4
    assert camera.peak == 1
    assert camera.grabs == 2
    assert recovered.aligned is True
    assert detector.calls == 1


def test_failing_callback_does_not_escape_tick(frontal_detection):
    def explode(verdict):
        raise RuntimeError("display gone")

    monitor = AlignmentMonitor(
        FakeCamera(), FakeDetector(frontal_detection), on_verdict=explode
    )

    verdict = asyncio.run(monitor.tick())

    assert verdict.aligned is True
    assert monitor.state is MonitorState.ALIGNED
    assert monitor.latest_verdict == verdict
    assert monitor.in_flight is False


def test_capture_mode_is_validated():
    status = CaptureStatus()
    status.mode = "upload"
    assert status.mode is CaptureMode.UPLOAD

    with pytest.raises(ValidationError):
        status.mode = "Camera"


def test_overlapping_tick_is_skipped(frontal_detection):
    gate = threading.Event()
    detector = FakeDetector(frontal_detection, gate=gate)
    monitor = AlignmentMonitor(FakeCamera(), detector)

    async def scenario():
        first = asyncio.create_task(monitor.tick())
        await _wait_until(lambda: detector.calls == 1)
        assert monitor.state is MonitorState.CHECKING
        skipped = await monitor.tick()
        gate.set()
        return skipped, await first, await monitor.tick()

    skipped, first, third = asyncio.run(scenario())

    assert skipped is None
    assert first.aligned is True
    assert third.aligned is True
    assert detector.calls == 2


def test_latch_released_after_failure():
    detector = FakeDetector(error=RuntimeError("boom"))
    monitor = AlignmentMonitor(FakeCamera(), detector)

    async def scenario():
        await monitor.tick()
        return await monitor.tick()

    assert asyncio.run(scenario()) is not None
    assert detector.calls == 2


def test_stop_discards_in_flight_result(frontal_detection):
    gate = threading.Event()
    seen = []
    detector = FakeDetector(frontal_detection, gate=gate)
    monitor = AlignmentMonitor(FakeCamera(), detector, on_verdict=seen.append)

    async def scenario():
        pending = asyncio.create_task(monitor.tick())
        await _wait_until(lambda: detector.calls == 1)
        monitor.stop()
        gate.set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert monitor.latest_verdict is None
    assert monitor.state is MonitorState.IDLE
    assert seen == []


def test_switch_view_discards_and_uses_new_view(frontal_detection):
    gate = threading.Event()
    detector = FakeDetector(frontal_detection, gate=gate)
    monitor = AlignmentMonitor(FakeCamera(), detector)

    async def scenario():
        pending = asyncio.create_task(monitor.tick())
        await _wait_until(lambda: detector.calls == 1)
        monitor.switch_view(CaptureView.SAGITTAL)
        gate.set()
        return await pending

    assert asyncio.run(scenario()) is None
    assert monitor.view is CaptureView.SAGITTAL
    assert monitor.running is False


def test_override_is_terminal(frontal_detection):
    detector = FakeDetector(frontal_detection)
    monitor = AlignmentMonitor(FakeCamera(), detector)
    monitor.status.has_permission = True

    monitor.override()
    verdict = asyncio.run(monitor.tick())

    assert verdict is None
    assert detector.calls == 1
    assert monitor.state is MonitorState.OVERRIDDEN
    assert monitor.polling_allowed() is False

    monitor.stop()
    assert monitor.state is MonitorState.OVERRIDDEN


def test_polling_loop_runs_until_stopped(frontal_detection):
    seen = []
    detector = FakeDetector(frontal_detection)
    monitor = AlignmentMonitor(
        FakeCamera(), detector, poll_interval=0.01, on_verdict=seen.append
    )
    monitor.status.has_permission = True

    async def scenario():
        monitor.start()
        await _wait_until(lambda: len(seen) >= 3)
        monitor.stop()
        await monitor.drain()
        calls = detector.calls
        await asyncio.sleep(0.05)
        return calls

    calls_at_stop = asyncio.run(scenario())

    assert all(v.aligned for v in seen)
    assert detector.calls == calls_at_stop
    assert monitor.running is False


@pytest.mark.parametrize(
    "mode, has_permission, is_loading",
    [
        ("upload", True, False),
        ("camera", False, False),
        ("camera", True, True),
    ],
)
def test_polling_waits_for_ready_camera(frontal_detection, mode, has_permission, is_loading):
    detector = FakeDetector(frontal_detection)
    monitor = AlignmentMonitor(FakeCamera(), detector, poll_interval=0.01)
    monitor.status.mode = mode
    monitor.status.has_permission = has_permission
    monitor.status.is_loading = is_loading

    async def scenario():
        monitor.start()
        await asyncio.sleep(0.05)
        monitor.stop()

    asyncio.run(scenario())

    assert monitor.polling_allowed() is False
    assert detector.calls == 0
