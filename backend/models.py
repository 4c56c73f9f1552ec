from datetime import datetime
from enum import Enum, IntEnum
from typing import Annotated, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

# MediaPipe Pose landmark indices
LANDMARK_NAMES = [
    "NOSE", "LEFT_EYE_INNER", "LEFT_EYE", "LEFT_EYE_OUTER",
    "RIGHT_EYE_INNER", "RIGHT_EYE", "RIGHT_EYE_OUTER",
    "LEFT_EAR", "RIGHT_EAR", "MOUTH_LEFT", "MOUTH_RIGHT",
    "LEFT_SHOULDER", "RIGHT_SHOULDER", "LEFT_ELBOW", "RIGHT_ELBOW",
    "LEFT_WRIST", "RIGHT_WRIST", "LEFT_PINKY", "RIGHT_PINKY",
    "LEFT_INDEX", "RIGHT_INDEX", "LEFT_THUMB", "RIGHT_THUMB",
    "LEFT_HIP", "RIGHT_HIP", "LEFT_KNEE", "RIGHT_KNEE",
    "LEFT_ANKLE", "RIGHT_ANKLE", "LEFT_HEEL", "RIGHT_HEEL",
    "LEFT_FOOT_INDEX", "RIGHT_FOOT_INDEX",
]

LANDMARK_COUNT = len(LANDMARK_NAMES)

PoseLandmark = IntEnum(
    "PoseLandmark", [(name, i) for i, name in enumerate(LANDMARK_NAMES)]
)


class Landmark(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0
    presence: float = 1.0


Skeleton = Annotated[
    tuple[Landmark, ...],
    Field(min_length=LANDMARK_COUNT, max_length=LANDMARK_COUNT),
]


def check_skeleton(landmarks) -> tuple[Landmark, ...]:
    """Return the landmarks as a tuple, rejecting anything but a full 33-point skeleton."""
    landmarks = tuple(landmarks)
    if len(landmarks) != LANDMARK_COUNT:
        raise ValueError(
            f"Expected {LANDMARK_COUNT} landmarks, got {len(landmarks)}"
        )
    return landmarks


class DetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    landmarks: Skeleton
    confidence: float
    image_width: int
    image_height: int


class Deviation(str, Enum):
    NORMAL = "normal"
    INCREASED = "increased"
    DECREASED = "decreased"


class JointAngle(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    angle: float  # degrees
    normal_range: tuple[float, float]

    @computed_field
    @property
    def deviation(self) -> Deviation:
        low, high = self.normal_range
        if self.angle < low:
            return Deviation.DECREASED
        if self.angle > high:
            return Deviation.INCREASED
        return Deviation.NORMAL


class FrontalAsymmetries(BaseModel):
    """Left/right differences in image pixels."""

    model_config = ConfigDict(frozen=True)

    shoulder_level: float = 0.0
    pelvic_level: float = 0.0
    head_tilt: float = 0.0
    leg_length: float = 0.0


class SagittalAlignment(BaseModel):
    """Signed horizontal offsets in image pixels, positive = rightward."""

    model_config = ConfigDict(frozen=True)

    head_position: float = 0.0
    shoulder_position: float = 0.0
    pelvis_position: float = 0.0
    knee_position: float = 0.0


class FrontalResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    landmarks: Skeleton
    joint_angles: tuple[JointAngle, ...]
    asymmetries: FrontalAsymmetries
    skipped_metrics: tuple[str, ...] = ()


class SagittalResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    landmarks: Skeleton
    joint_angles: tuple[JointAngle, ...]
    alignment: SagittalAlignment
    skipped_metrics: tuple[str, ...] = ()


class Classification(BaseModel):
    """Payload produced by the external posture classifier."""

    model_config = ConfigDict(frozen=True, extra="allow")

    category: str = "unclassified"
    confidence: float = 0.0
    characteristics: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    severity: Literal["mild", "moderate", "severe"] = "mild"


class AnalysisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    frontal: FrontalResult
    sagittal: SagittalResult
    classification: Classification
    created_at: datetime


class CaptureView(str, Enum):
    FRONTAL = "frontal"
    SAGITTAL = "sagittal"


class CaptureMode(str, Enum):
    CAMERA = "camera"
    UPLOAD = "upload"


class AlignmentReason(str, Enum):
    ALIGNED = "aligned"
    NO_POSE = "no_pose"
    NOT_CENTERED = "not_centered"
    SHOULDERS_UNEVEN = "shoulders_uneven"
    HIPS_UNEVEN = "hips_uneven"
    NOT_VERTICAL = "not_vertical"
    HEAD_FORWARD = "head_forward"
    CHECK_FAILED = "check_failed"


class AlignmentVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    aligned: bool
    message: str
    confidence: Optional[float] = None
    reason: AlignmentReason


class JobStatus(BaseModel):
    job_id: str
    status: str  # pending, processing, complete, error
    message: str = ""

