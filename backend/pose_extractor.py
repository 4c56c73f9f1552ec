import logging
import threading
from typing import Optional

import cv2
import mediapipe as mp
import numpy as np

from errors import DetectorNotReady, NoPoseDetected
from models import DetectionResult, Landmark
from settings import MODEL_PATH

logger = logging.getLogger(__name__)

PoseLandmarker = mp.tasks.vision.PoseLandmarker
PoseLandmarkerOptions = mp.tasks.vision.PoseLandmarkerOptions
RunningMode = mp.tasks.vision.RunningMode
BaseOptions = mp.tasks.BaseOptions


class PoseDetector:
    """Single-person MediaPipe pose landmarker working on still BGR images.

    Safe to share between threads. Usable as a context manager;
    ``close()`` releases the model.
    """

    def __init__(self, model_path: str = MODEL_PATH, landmarker=None):
        if landmarker is None:
            options = PoseLandmarkerOptions(
                base_options=BaseOptions(model_asset_path=model_path),
                running_mode=RunningMode.IMAGE,
                num_poses=1,
                min_pose_detection_confidence=0.5,
                min_pose_presence_confidence=0.5,
                min_tracking_confidence=0.5,
            )
            landmarker = PoseLandmarker.create_from_options(options)
            logger.info("Pose landmarker loaded from %s", model_path)
        self._landmarker = landmarker
        self._lock = threading.Lock()

    def detect(self, image: np.ndarray) -> DetectionResult:
        """Detect the skeleton in a BGR image.

        Raises NoPoseDetected when the model finds no person.
        """
        if self._landmarker is None:
            raise DetectorNotReady("Pose detector has been closed")

        height, width = image.shape[:2]
        rgb = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=rgb)
        with self._lock:
            result = self._landmarker.detect(mp_image)
        return detection_from_result(result, width, height)

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def detection_from_result(result, width: int, height: int) -> DetectionResult:
    """Convert a PoseLandmarkerResult into a DetectionResult for the first person."""
    if not result.pose_landmarks or len(result.pose_landmarks) == 0:
        raise NoPoseDetected(
            "No pose landmarks detected. Make sure the person is fully visible."
        )

    landmarks = _to_landmarks(result.pose_landmarks[0])  # first person
    return DetectionResult(
        landmarks=landmarks,
        confidence=mean_visibility(landmarks),
        image_width=width,
        image_height=height,
    )


def mean_visibility(landmarks: list[Landmark]) -> float:
    """Average visibility over the points the model actually scored."""
    scores = [lm.visibility for lm in landmarks if lm.visibility > 0]
    if not scores:
        return 0.0
    return float(np.mean(scores))


def _to_landmarks(raw_landmarks) -> list[Landmark]:
    # MediaPipe Tasks API: NormalizedLandmark with x, y, z, visibility, presence
    landmarks = []
    for lm in raw_landmarks:
        landmarks.append(
            Landmark(
                x=lm.x,
                y=lm.y,
                z=lm.z or 0.0,
                visibility=_score(getattr(lm, "visibility", None), 0.0),
                presence=_score(getattr(lm, "presence", None), 1.0),
            )
        )
    return landmarks


def _score(value: Optional[float], default: float) -> float:
    return default if value is None else float(value)


def load_image(path: str) -> np.ndarray:
    image = cv2.imread(path, cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError(f"Cannot read image: {path}")
    return image


def decode_image(data: bytes) -> np.ndarray:
    image = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    if image is None:
        raise ValueError("Uploaded file is not a readable image")
    return image
