import numpy as np

from models import Landmark
from settings import HORIZONTAL_REFERENCE_PX, VISIBILITY_THRESHOLD

Point = tuple[float, float]


def to_pixel(landmark: Landmark, width: float, height: float) -> Point:
    """Scale an image-normalized landmark into pixel coordinates."""
    return (landmark.x * width, landmark.y * height)


def midpoint(a: Point, b: Point) -> Point:
    return ((a[0] + b[0]) / 2, (a[1] + b[1]) / 2)


def angle_between_points(p1: Point, vertex: Point, p3: Point) -> float:
    """Angle in degrees at ``vertex`` between the rays to ``p1`` and ``p3``.

    Returns 0.0 when either ray has zero length, so a reading of exactly 0°
    may mean duplicate points rather than a real measurement.
    """
    v1 = np.array([p1[0] - vertex[0], p1[1] - vertex[1]], dtype=np.float64)
    v2 = np.array([p3[0] - vertex[0], p3[1] - vertex[1]], dtype=np.float64)
    mag1 = np.linalg.norm(v1)
    mag2 = np.linalg.norm(v2)
    if mag1 == 0 or mag2 == 0:
        return 0.0
    cos_angle = np.clip(np.dot(v1, v2) / (mag1 * mag2), -1.0, 1.0)
    return float(np.degrees(np.arccos(cos_angle)))


def horizontal_reference(vertex: Point, toward: Point) -> Point:
    """A point on the horizontal through ``vertex``, on the same side as ``toward``."""
    direction = -1.0 if toward[0] < vertex[0] else 1.0
    return (vertex[0] + direction * HORIZONTAL_REFERENCE_PX, vertex[1])


def level_angle(a: Point, b: Point) -> float:
    """Tilt of segment a-b against the horizontal, in [0, 90] degrees."""
    return angle_between_points(a, b, horizontal_reference(b, a))


def is_visible(*landmarks: Landmark, threshold: float = VISIBILITY_THRESHOLD) -> bool:
    return all(lm.visibility > threshold for lm in landmarks)


def more_visible(left: Landmark, right: Landmark) -> Landmark:
    """Pick the side the camera sees better; ties go to the right side."""
    return left if left.visibility > right.visibility else right
