import logging
from typing import Protocol, Union

import cv2
import numpy as np

from errors import FrameNotReady

logger = logging.getLogger(__name__)


class FrameSource(Protocol):
    def grab_frame(self) -> np.ndarray: ...


class CameraFrameSource:
    """Reads frames from a local camera or stream through OpenCV."""

    def __init__(self, device: Union[int, str] = 0):
        self.device = device
        self._cap = cv2.VideoCapture(device)
        if not self._cap.isOpened():
            logger.warning("Camera %s did not open", device)

    def grab_frame(self) -> np.ndarray:
        if self._cap is None or not self._cap.isOpened():
            raise FrameNotReady(f"Camera {self.device} is not open")

        ret, frame = self._cap.read()
        if not ret or frame is None:
            raise FrameNotReady("No frame buffered yet")
        if frame.shape[0] == 0 or frame.shape[1] == 0:
            raise FrameNotReady("Frame has zero dimensions")
        return frame

    def release(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.release()
