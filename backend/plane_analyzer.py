import logging
from typing import NamedTuple, Sequence

from geometry import (
    angle_between_points,
    horizontal_reference,
    is_visible,
    level_angle,
    midpoint,
    more_visible,
    to_pixel,
)
from models import (
    FrontalAsymmetries,
    FrontalResult,
    JointAngle,
    Landmark,
    PoseLandmark,
    SagittalAlignment,
    SagittalResult,
    check_skeleton,
)
from settings import (
    CVA_RANGE,
    HIP_ANGLE_RANGE,
    KNEE_ANGLE_RANGE,
    PELVIC_LEVEL_RANGE,
    SHOULDER_LEVEL_RANGE,
)

logger = logging.getLogger(__name__)

SHOULDER_LEVEL = "Shoulder Level"
PELVIC_LEVEL = "Pelvic Level"
CVA = "Cranio-Vertebral Angle"
HIP_ANGLE = "Hip Angle"
KNEE_ANGLE = "Knee Angle"


# Frontal plane

def analyze_frontal(
    landmarks: Sequence[Landmark], width: int, height: int
) -> FrontalResult:
    """Level angles and left/right asymmetries for a front-facing image."""
    landmarks = check_skeleton(landmarks)
    skipped: list[str] = []

    l_shoulder = landmarks[PoseLandmark.LEFT_SHOULDER]
    r_shoulder = landmarks[PoseLandmark.RIGHT_SHOULDER]
    l_hip = landmarks[PoseLandmark.LEFT_HIP]
    r_hip = landmarks[PoseLandmark.RIGHT_HIP]

    joint_angles: list[JointAngle] = []
    for name, left, right, normal_range in (
        (SHOULDER_LEVEL, l_shoulder, r_shoulder, SHOULDER_LEVEL_RANGE),
        (PELVIC_LEVEL, l_hip, r_hip, PELVIC_LEVEL_RANGE),
    ):
        if not is_visible(left, right):
            skipped.append(name)
            continue
        angle = level_angle(
            to_pixel(left, width, height), to_pixel(right, width, height)
        )
        joint_angles.append(
            JointAngle(name=name, angle=angle, normal_range=normal_range)
        )

    asymmetries = FrontalAsymmetries(
        shoulder_level=_level_difference(l_shoulder, r_shoulder, height, "shoulder_level", skipped),
        pelvic_level=_level_difference(l_hip, r_hip, height, "pelvic_level", skipped),
        head_tilt=_head_tilt(landmarks, width, height, skipped),
        leg_length=_leg_length_difference(landmarks, height, skipped),
    )

    if skipped:
        logger.debug("Frontal metrics skipped for low visibility: %s", skipped)

    return FrontalResult(
        landmarks=landmarks,
        joint_angles=tuple(joint_angles),
        asymmetries=asymmetries,
        skipped_metrics=tuple(skipped),
    )


def _level_difference(left, right, height, name, skipped) -> float:
    if not is_visible(left, right):
        skipped.append(name)
        return 0.0
    return abs(left.y - right.y) * height


def _head_tilt(landmarks, width, height, skipped) -> float:
    nose = landmarks[PoseLandmark.NOSE]
    l_ear = landmarks[PoseLandmark.LEFT_EAR]
    r_ear = landmarks[PoseLandmark.RIGHT_EAR]
    if not is_visible(nose, l_ear, r_ear):
        skipped.append("head_tilt")
        return 0.0
    ear_mid = midpoint(to_pixel(l_ear, width, height), to_pixel(r_ear, width, height))
    return abs(nose.x * width - ear_mid[0])


def _leg_length_difference(landmarks, height, skipped) -> float:
    l_hip = landmarks[PoseLandmark.LEFT_HIP]
    r_hip = landmarks[PoseLandmark.RIGHT_HIP]
    l_ankle = landmarks[PoseLandmark.LEFT_ANKLE]
    r_ankle = landmarks[PoseLandmark.RIGHT_ANKLE]
    if not is_visible(l_hip, r_hip, l_ankle, r_ankle):
        skipped.append("leg_length")
        return 0.0
    left_leg = abs(l_hip.y - l_ankle.y) * height
    right_leg = abs(r_hip.y - r_ankle.y) * height
    return abs(left_leg - right_leg)


# Sagittal plane

class SideChain(NamedTuple):
    """Ear-to-ankle landmarks, each taken from whichever side is more visible."""

    ear: Landmark
    shoulder: Landmark
    hip: Landmark
    knee: Landmark
    ankle: Landmark


def resolve_side_chain(landmarks: Sequence[Landmark]) -> SideChain:
    def pick(left: PoseLandmark, right: PoseLandmark) -> Landmark:
        return more_visible(landmarks[left], landmarks[right])

    return SideChain(
        ear=pick(PoseLandmark.LEFT_EAR, PoseLandmark.RIGHT_EAR),
        shoulder=pick(PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER),
        hip=pick(PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP),
        knee=pick(PoseLandmark.LEFT_KNEE, PoseLandmark.RIGHT_KNEE),
        ankle=pick(PoseLandmark.LEFT_ANKLE, PoseLandmark.RIGHT_ANKLE),
    )


def analyze_sagittal(
    landmarks: Sequence[Landmark], width: int, height: int
) -> SagittalResult:
    """Joint angles and plumb-line offsets for a side-facing image."""
    landmarks = check_skeleton(landmarks)
    chain = resolve_side_chain(landmarks)
    skipped: list[str] = []

    def px(lm: Landmark):
        return to_pixel(lm, width, height)

    joint_angles: list[JointAngle] = []

    # CVA: ear above the shoulder, measured from a horizontal pointing the way the head faces
    if is_visible(chain.ear, chain.shoulder):
        shoulder = px(chain.shoulder)
        ear = px(chain.ear)
        cva = angle_between_points(ear, shoulder, horizontal_reference(shoulder, ear))
        joint_angles.append(JointAngle(name=CVA, angle=cva, normal_range=CVA_RANGE))
    else:
        skipped.append(CVA)

    if is_visible(chain.shoulder, chain.hip, chain.knee):
        raw = angle_between_points(px(chain.shoulder), px(chain.hip), px(chain.knee))
        joint_angles.append(
            JointAngle(name=HIP_ANGLE, angle=180.0 - raw, normal_range=HIP_ANGLE_RANGE)
        )
    else:
        skipped.append(HIP_ANGLE)

    if is_visible(chain.hip, chain.knee, chain.ankle):
        knee = angle_between_points(px(chain.hip), px(chain.knee), px(chain.ankle))
        joint_angles.append(
            JointAngle(name=KNEE_ANGLE, angle=knee, normal_range=KNEE_ANGLE_RANGE)
        )
    else:
        skipped.append(KNEE_ANGLE)

    alignment = SagittalAlignment(
        head_position=_horizontal_offset(chain.ear, chain.shoulder, width, "head_position", skipped),
        shoulder_position=_horizontal_offset(chain.shoulder, chain.hip, width, "shoulder_position", skipped),
        pelvis_position=_horizontal_offset(chain.hip, chain.ankle, width, "pelvis_position", skipped),
        knee_position=_horizontal_offset(chain.knee, chain.ankle, width, "knee_position", skipped),
    )

    if skipped:
        logger.debug("Sagittal metrics skipped for low visibility: %s", skipped)

    return SagittalResult(
        landmarks=landmarks,
        joint_angles=tuple(joint_angles),
        alignment=alignment,
        skipped_metrics=tuple(skipped),
    )


def _horizontal_offset(point, reference, width, name, skipped) -> float:
    if not is_visible(point, reference):
        skipped.append(name)
        return 0.0
    return (point.x - reference.x) * width
