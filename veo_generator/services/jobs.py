import logging
import mimetypes
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from veo_generator.config import settings
from veo_generator.models.schemas import GenerationConfig
from veo_generator.services.veo_service import (
    GenerationCancelledError,
    GenerationInProgressError,
    VideoArtifact,
    VideoGenerationError,
    VideoGenerator,
)

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = {"pending", "in_progress"}
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during video generation."


class JobNotFoundError(RuntimeError):
    pass


class JobNotReadyError(RuntimeError):
    pass


@dataclass
class VideoJob:
    job_id: str
    status: str = "pending"
    detail: Optional[str] = None
    progress: List[str] = field(default_factory=list)
    video_url: Optional[str] = None
    download_url: Optional[str] = None
    local_path: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)


_JOB_STORE: Dict[str, VideoJob] = {}
_STORE_LOCK = threading.Lock()

_generator: Optional[VideoGenerator] = None


def get_video_generator() -> VideoGenerator:
    global _generator
    if _generator is None:
        _generator = VideoGenerator.from_settings(settings)
    return _generator


def create_video_job(config: GenerationConfig) -> VideoJob:
    with _STORE_LOCK:
        if any(job.status in ACTIVE_STATUSES for job in _JOB_STORE.values()):
            raise GenerationInProgressError("A video generation is already in progress.")
        job = VideoJob(job_id=str(uuid.uuid4()), detail="Preparing assets...")
        _JOB_STORE[job.job_id] = job
    logger.info("Created video job %s (aspect ratio %s)", job.job_id, config.aspect_ratio.value)
    return job


def run_video_job(job_id: str, config: GenerationConfig) -> None:
    job = _get_job(job_id)
    if job.cancel_event.is_set():
        job.status = "cancelled"
        job.detail = "Video generation was cancelled."
        return
    job.status = "in_progress"

    def on_progress(message: str) -> None:
        job.progress.append(message)
        job.detail = message

    try:
        artifact = get_video_generator().generate(config, on_progress, cancel_event=job.cancel_event)
        if job.cancel_event.is_set():
            raise GenerationCancelledError("Video generation was cancelled.")
        _store_artifact(job, artifact)
    except GenerationCancelledError as exc:
        job.status = "cancelled"
        job.detail = str(exc)
        logger.info("Video job %s cancelled", job_id)
    except VideoGenerationError as exc:
        job.status = "failed"
        job.detail = str(exc) or UNKNOWN_ERROR_MESSAGE
        logger.error("Video job %s failed: %s", job_id, job.detail)
    except Exception as exc:
        # SDK and network errors are not wrapped; report them as-is.
        job.status = "failed"
        job.detail = str(exc) or UNKNOWN_ERROR_MESSAGE
        logger.exception("Video job %s failed unexpectedly", job_id)


def _store_artifact(job: VideoJob, artifact: VideoArtifact) -> None:
    extension = ".mp4"
    if artifact.mime_type.startswith("video/"):
        extension = mimetypes.guess_extension(artifact.mime_type) or extension
    local_filename = f"{job.job_id}{extension}"
    local_path = Path(settings.output_local_dir) / local_filename
    local_path.parent.mkdir(parents=True, exist_ok=True)
    local_path.write_bytes(artifact.content)

    job.local_path = str(local_path)
    job.video_url = f"/videos/{local_filename}"
    job.download_url = f"/api/download-video/{job.job_id}"
    job.status = "completed"
    logger.info("Video for job %s stored at %s", job.job_id, job.local_path)


def get_job_status(job_id: str) -> Dict:
    return _serialize_job(_get_job(job_id))


def cancel_video_job(job_id: str) -> Dict:
    job = _get_job(job_id)
    if job.status in ACTIVE_STATUSES:
        job.cancel_event.set()
        job.detail = "Cancelling..."
        logger.info("Cancellation requested for video job %s", job_id)
    return _serialize_job(job)


def get_job_video_path(job_id: str) -> Path:
    job = _get_job(job_id)
    if job.status != "completed" or not job.local_path:
        raise JobNotReadyError(f"Video for job {job_id} is not available (status: {job.status})")
    return Path(job.local_path)


def _get_job(job_id: str) -> VideoJob:
    job = _JOB_STORE.get(job_id)
    if not job:
        raise JobNotFoundError(f"Job {job_id} not found")
    return job


def _serialize_job(job: VideoJob) -> Dict:
    return {
        "job_id": job.job_id,
        "status": job.status,
        "detail": job.detail,
        "progress": list(job.progress),
        "video_url": job.video_url,
        "download_url": job.download_url,
        "created_at": job.created_at,
    }
