from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from geometry import is_visible, more_visible
from guidance_messages import DEFAULT_LOCALE, guidance_message
from models import (
    AlignmentReason,
    AlignmentVerdict,
    CaptureView,
    Landmark,
    PoseLandmark,
    check_skeleton,
)
from settings import (
    FRONTAL_CENTER_BAND,
    FRONTAL_LEVEL_TOLERANCE,
    MIN_DETECTION_CONFIDENCE,
    SAGITTAL_CENTER_BAND,
    SAGITTAL_COLUMN_TOLERANCE,
    SAGITTAL_HEAD_TOLERANCE,
)


@dataclass(frozen=True)
class AlignmentRule:
    reason: AlignmentReason
    passes: Callable[[Sequence[Landmark]], bool]


def _within(value: float, band: tuple[float, float]) -> bool:
    return band[0] <= value <= band[1]


# Frontal rules

def _frontal_centered(landmarks) -> bool:
    left = landmarks[PoseLandmark.LEFT_SHOULDER]
    right = landmarks[PoseLandmark.RIGHT_SHOULDER]
    if not is_visible(left, right):
        return False
    return _within((left.x + right.x) / 2, FRONTAL_CENTER_BAND)


def _shoulders_level(landmarks) -> bool:
    left = landmarks[PoseLandmark.LEFT_SHOULDER]
    right = landmarks[PoseLandmark.RIGHT_SHOULDER]
    return is_visible(left, right) and abs(left.y - right.y) < FRONTAL_LEVEL_TOLERANCE


def _hips_level(landmarks) -> bool:
    left = landmarks[PoseLandmark.LEFT_HIP]
    right = landmarks[PoseLandmark.RIGHT_HIP]
    return is_visible(left, right) and abs(left.y - right.y) < FRONTAL_LEVEL_TOLERANCE


# Sagittal rules

def _side(landmarks, left: PoseLandmark, right: PoseLandmark) -> Landmark:
    return more_visible(landmarks[left], landmarks[right])


def _sagittal_centered(landmarks) -> bool:
    shoulder = _side(landmarks, PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER)
    return is_visible(shoulder) and _within(shoulder.x, SAGITTAL_CENTER_BAND)


def _vertical_column(landmarks) -> bool:
    shoulder = _side(landmarks, PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER)
    hip = _side(landmarks, PoseLandmark.LEFT_HIP, PoseLandmark.RIGHT_HIP)
    ankle = _side(landmarks, PoseLandmark.LEFT_ANKLE, PoseLandmark.RIGHT_ANKLE)
    if not is_visible(shoulder, hip, ankle):
        return False
    deviation = max(abs(shoulder.x - hip.x), abs(hip.x - ankle.x))
    return deviation < SAGITTAL_COLUMN_TOLERANCE


def _head_over_shoulder(landmarks) -> bool:
    ear = _side(landmarks, PoseLandmark.LEFT_EAR, PoseLandmark.RIGHT_EAR)
    shoulder = _side(landmarks, PoseLandmark.LEFT_SHOULDER, PoseLandmark.RIGHT_SHOULDER)
    return is_visible(ear, shoulder) and abs(ear.x - shoulder.x) < SAGITTAL_HEAD_TOLERANCE


FRONTAL_RULES = (
    AlignmentRule(AlignmentReason.NOT_CENTERED, _frontal_centered),
    AlignmentRule(AlignmentReason.SHOULDERS_UNEVEN, _shoulders_level),
    AlignmentRule(AlignmentReason.HIPS_UNEVEN, _hips_level),
)

SAGITTAL_RULES = (
    AlignmentRule(AlignmentReason.NOT_CENTERED, _sagittal_centered),
    AlignmentRule(AlignmentReason.NOT_VERTICAL, _vertical_column),
    AlignmentRule(AlignmentReason.HEAD_FORWARD, _head_over_shoulder),
)

RULES = {
    CaptureView.FRONTAL: FRONTAL_RULES,
    CaptureView.SAGITTAL: SAGITTAL_RULES,
}


def first_failure(
    rules: Sequence[AlignmentRule], landmarks: Sequence[Landmark]
) -> Optional[AlignmentReason]:
    for rule in rules:
        if not rule.passes(landmarks):
            return rule.reason
    return None


def evaluate_alignment(
    landmarks: Sequence[Landmark],
    confidence: Optional[float],
    view: CaptureView,
    locale: str = DEFAULT_LOCALE,
) -> AlignmentVerdict:
    """Judge one live frame. Never carries anything over from earlier frames."""
    view = CaptureView(view)
    if not landmarks or confidence is None or confidence < MIN_DETECTION_CONFIDENCE:
        return no_pose_verdict(view, locale)

    landmarks = check_skeleton(landmarks)
    reason = first_failure(RULES[view], landmarks)
    if reason is not None:
        return AlignmentVerdict(
            aligned=False,
            message=guidance_message(view, reason, locale),
            confidence=confidence,
            reason=reason,
        )

    return AlignmentVerdict(
        aligned=True,
        message=guidance_message(view, AlignmentReason.ALIGNED, locale),
        confidence=confidence,
        reason=AlignmentReason.ALIGNED,
    )


def no_pose_verdict(view: CaptureView, locale: str = DEFAULT_LOCALE) -> AlignmentVerdict:
    return AlignmentVerdict(
        aligned=False,
        message=guidance_message(view, AlignmentReason.NO_POSE, locale),
        confidence=None,
        reason=AlignmentReason.NO_POSE,
    )


def fallback_verdict(view: CaptureView, locale: str = DEFAULT_LOCALE) -> AlignmentVerdict:
    """Verdict used when a frame could not be grabbed or analyzed at all."""
    return AlignmentVerdict(
        aligned=False,
        message=guidance_message(view, AlignmentReason.CHECK_FAILED, locale),
        confidence=None,
        reason=AlignmentReason.CHECK_FAILED,
    )
