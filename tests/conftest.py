import pytest

from models import LANDMARK_COUNT, DetectionResult, Landmark, PoseLandmark


def build_skeleton(points=None, default_visibility=1.0):
    """33 landmarks at the image center, with ``points`` placed on top.

    ``points`` maps a PoseLandmark to ``(x, y)`` or ``(x, y, visibility)``.
    """
    landmarks = [
        Landmark(x=0.5, y=0.5, visibility=default_visibility)
        for _ in range(LANDMARK_COUNT)
    ]
    for index, value in (points or {}).items():
        x, y = value[0], value[1]
        visibility = value[2] if len(value) > 2 else 1.0
        landmarks[index] = Landmark(x=x, y=y, visibility=visibility)
    return landmarks


def build_side_profile(ear, shoulder, hip, knee, ankle, visibility=0.95, hidden=0.1):
    """Side view: the left side carries the chain, the right side is occluded."""
    P = PoseLandmark
    points = {
        P.LEFT_EAR: (*ear, visibility),
        P.LEFT_SHOULDER: (*shoulder, visibility),
        P.LEFT_HIP: (*hip, visibility),
        P.LEFT_KNEE: (*knee, visibility),
        P.LEFT_ANKLE: (*ankle, visibility),
        P.RIGHT_EAR: (0.1, 0.1, hidden),
        P.RIGHT_SHOULDER: (0.1, 0.1, hidden),
        P.RIGHT_HIP: (0.1, 0.1, hidden),
        P.RIGHT_KNEE: (0.1, 0.1, hidden),
        P.RIGHT_ANKLE: (0.1, 0.1, hidden),
    }
    return build_skeleton(points)


IDEAL_FRONTAL_POINTS = {
    PoseLandmark.NOSE: (0.50, 0.12),
    PoseLandmark.LEFT_EAR: (0.54, 0.13),
    PoseLandmark.RIGHT_EAR: (0.46, 0.13),
    PoseLandmark.LEFT_SHOULDER: (0.60, 0.30),
    PoseLandmark.RIGHT_SHOULDER: (0.40, 0.30),
    PoseLandmark.LEFT_HIP: (0.56, 0.55),
    PoseLandmark.RIGHT_HIP: (0.44, 0.55),
    PoseLandmark.LEFT_KNEE: (0.56, 0.73),
    PoseLandmark.RIGHT_KNEE: (0.44, 0.73),
    PoseLandmark.LEFT_ANKLE: (0.56, 0.90),
    PoseLandmark.RIGHT_ANKLE: (0.44, 0.90),
}


@pytest.fixture
def skeleton():
    return build_skeleton


@pytest.fixture
def side_profile():
    return build_side_profile


@pytest.fixture
def ideal_frontal():
    return build_skeleton(IDEAL_FRONTAL_POINTS)


@pytest.fixture
def upright_side():
    return build_side_profile(
        ear=(0.52, 0.15),
        shoulder=(0.50, 0.30),
        hip=(0.50, 0.55),
        knee=(0.50, 0.75),
        ankle=(0.50, 0.95),
    )


@pytest.fixture
def frontal_detection(ideal_frontal):
    return DetectionResult(
        landmarks=ideal_frontal, confidence=0.9, image_width=640, image_height=480
    )


@pytest.fixture
def sagittal_detection(upright_side):
    return DetectionResult(
        landmarks=upright_side, confidence=0.85, image_width=640, image_height=480
    )
