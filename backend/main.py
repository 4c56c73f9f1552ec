import logging
import threading
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from aggregator import run_final_analysis
from alignment import evaluate_alignment, fallback_verdict, no_pose_verdict
from errors import NoPoseDetected
from models import AlignmentVerdict, CaptureView, Classification, JobStatus
from pose_extractor import PoseDetector, decode_image
from settings import configure_logging, load_settings

settings = load_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    global _detector
    yield
    with _detector_lock:
        if _detector is not None:
            _detector.close()
            _detector = None


app = FastAPI(title="Posture Screening API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# In-memory job store
jobs: dict[str, dict] = {}

_detector: Optional[PoseDetector] = None
_detector_lock = threading.Lock()


def get_detector() -> PoseDetector:
    global _detector
    with _detector_lock:
        if _detector is None:
            _detector = PoseDetector(settings.model_path)
        return _detector


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.post("/api/analyze")
async def analyze(
    frontal: UploadFile = File(...),
    sagittal: UploadFile = File(...),
    classification: Optional[str] = Form(None),
    detector=Depends(get_detector),
):
    try:
        payload = (
            Classification.model_validate_json(classification)
            if classification
            else Classification()
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid classification: {e}")

    job_id = str(uuid.uuid4())
    jobs[job_id] = {"status": "pending", "message": "Queued", "result": None}

    frontal_bytes = await frontal.read()
    sagittal_bytes = await sagittal.read()

    # Process in background thread
    thread = threading.Thread(
        target=_process_job,
        args=(job_id, detector, frontal_bytes, sagittal_bytes, payload),
    )
    thread.start()

    return {"job_id": job_id}


def _process_job(job_id, detector, frontal_bytes, sagittal_bytes, classification):
    try:
        jobs[job_id]["status"] = "processing"
        jobs[job_id]["message"] = "Detecting poses..."

        frontal_image = decode_image(frontal_bytes)
        sagittal_image = decode_image(sagittal_bytes)
        result = run_final_analysis(detector, frontal_image, sagittal_image, classification)

        jobs[job_id]["status"] = "complete"
        jobs[job_id]["message"] = "Done"
        jobs[job_id]["result"] = result
    except NoPoseDetected as e:
        jobs[job_id]["status"] = "error"
        jobs[job_id]["message"] = str(e)
    except Exception as e:
        logger.exception("Analysis job %s failed", job_id)
        jobs[job_id]["status"] = "error"
        jobs[job_id]["message"] = str(e)


@app.get("/api/status/{job_id}")
def get_status(job_id: str):
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    job = jobs[job_id]
    return JobStatus(job_id=job_id, status=job["status"], message=job["message"])


@app.get("/api/results/{job_id}")
def get_results(job_id: str):
    if job_id not in jobs:
        raise HTTPException(status_code=404, detail="Job not found")
    job = jobs[job_id]
    if job["status"] != "complete":
        raise HTTPException(status_code=400, detail=f"Job not complete: {job['status']}")
    return job["result"]


@app.post("/api/alignment", response_model=AlignmentVerdict)
def check_alignment(
    frame: UploadFile = File(...),
    view: CaptureView = Form(...),
    locale: Optional[str] = Form(None),
    detector=Depends(get_detector),
):
    """One live-guidance tick for a frame sent by the capture screen."""
    locale = locale or settings.locale
    try:
        image = decode_image(frame.file.read())
        detection = detector.detect(image)
    except NoPoseDetected:
        return no_pose_verdict(view, locale)
    except Exception as e:
        logger.warning("Alignment frame could not be analyzed: %s", e)
        return fallback_verdict(view, locale)
    return evaluate_alignment(detection.landmarks, detection.confidence, view, locale)
