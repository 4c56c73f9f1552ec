import logging
from datetime import datetime, timezone
from typing import Optional

import numpy as np

from errors import NoPoseDetected
from models import (
    AnalysisResult,
    Classification,
    DetectionResult,
    FrontalResult,
    SagittalResult,
)
from plane_analyzer import analyze_frontal, analyze_sagittal

logger = logging.getLogger(__name__)


def aggregate(
    frontal: FrontalResult,
    sagittal: SagittalResult,
    classification: Classification,
    created_at: Optional[datetime] = None,
) -> AnalysisResult:
    """Bundle both plane results and the classifier output into one read-only result."""
    return AnalysisResult(
        frontal=frontal,
        sagittal=sagittal,
        classification=classification,
        created_at=created_at or datetime.now(timezone.utc),
    )


def analyze_session(
    frontal: DetectionResult,
    sagittal: DetectionResult,
    classification: Classification,
) -> AnalysisResult:
    frontal_result = analyze_frontal(
        frontal.landmarks, frontal.image_width, frontal.image_height
    )
    sagittal_result = analyze_sagittal(
        sagittal.landmarks, sagittal.image_width, sagittal.image_height
    )
    return aggregate(frontal_result, sagittal_result, classification)


def run_final_analysis(
    detector,
    frontal_image: np.ndarray,
    sagittal_image: np.ndarray,
    classification: Classification,
) -> AnalysisResult:
    """Detect both photos one after the other, then measure and aggregate.

    A photo without a detectable person fails the whole analysis with
    NoPoseDetected; there is nothing to measure without landmarks.
    """
    detections = {}
    for view, image in (("frontal", frontal_image), ("sagittal", sagittal_image)):
        try:
            detections[view] = detector.detect(image)
        except NoPoseDetected:
            logger.warning("No pose detected in the %s image", view)
            raise
        logger.info(
            "Detected %s pose (confidence %.2f)", view, detections[view].confidence
        )

    return analyze_session(detections["frontal"], detections["sagittal"], classification)
