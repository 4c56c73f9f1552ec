import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field

MODEL_PATH = os.path.join(os.path.dirname(__file__), "pose_landmarker_lite.task")

# Final measurement
VISIBILITY_THRESHOLD = 0.5
SHOULDER_LEVEL_RANGE = (-5.0, 5.0)
PELVIC_LEVEL_RANGE = (-3.0, 3.0)
CVA_RANGE = (52.0, 66.0)
HIP_ANGLE_RANGE = (170.0, 185.0)
KNEE_ANGLE_RANGE = (170.0, 185.0)
HORIZONTAL_REFERENCE_PX = 100.0

# Live guidance, normalized image coordinates
MIN_DETECTION_CONFIDENCE = 0.4
FRONTAL_CENTER_BAND = (0.35, 0.65)
FRONTAL_LEVEL_TOLERANCE = 0.04
SAGITTAL_CENTER_BAND = (0.25, 0.75)
SAGITTAL_COLUMN_TOLERANCE = 0.08
SAGITTAL_HEAD_TOLERANCE = 0.12

ENV_PREFIX = "POSTURE_"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class Settings(BaseModel):
    model_path: str = MODEL_PATH
    poll_interval: float = Field(default=2.0, gt=0)
    frame_timeout: float = Field(default=1.0, gt=0)
    locale: str = "en"
    log_level: str = "INFO"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build ``Settings`` from ``POSTURE_<FIELD>`` variables, falling back to defaults."""
    environ = os.environ if environ is None else environ
    values = {}
    for field in Settings.model_fields:
        raw = environ.get(ENV_PREFIX + field.upper())
        if raw is not None and raw != "":
            values[field] = raw
    return Settings(**values)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
