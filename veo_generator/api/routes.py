import logging

from fastapi import APIRouter, BackgroundTasks, HTTPException
from fastapi.responses import FileResponse

from veo_generator.config import settings
from veo_generator.models.schemas import GenerationConfig, JobStatusResponse, VideoJobResponse
from veo_generator.services import jobs
from veo_generator.services.jobs import JobNotFoundError, JobNotReadyError
from veo_generator.services.veo_service import GenerationInProgressError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.post("/generate-video", response_model=VideoJobResponse)
def generate_video(payload: GenerationConfig, background_tasks: BackgroundTasks):
    prompt = (payload.prompt or "").strip()
    if not prompt:
        raise HTTPException(status_code=400, detail="Please enter a prompt.")

    if len(prompt) > settings.prompt_char_limit:
        raise HTTPException(
            status_code=400,
            detail=f"Prompt too long. Maximum {settings.prompt_char_limit} characters.",
        )

    try:
        job = jobs.create_video_job(payload)
    except GenerationInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    background_tasks.add_task(jobs.run_video_job, job.job_id, payload)
    return VideoJobResponse(job_id=job.job_id, status=job.status)


@router.get("/video-status/{job_id}", response_model=JobStatusResponse)
def get_video_status(job_id: str):
    try:
        job_status = jobs.get_job_status(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return JobStatusResponse(**job_status)


@router.post("/cancel-video/{job_id}", response_model=JobStatusResponse)
def cancel_video(job_id: str):
    try:
        job_status = jobs.cancel_video_job(job_id)
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    return JobStatusResponse(**job_status)


@router.get("/download-video/{job_id}")
def download_video(job_id: str):
    try:
        path = jobs.get_job_video_path(job_id)
        created_at = jobs.get_job_status(job_id)["created_at"]
    except JobNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except JobNotReadyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    if not path.exists():
        logger.error("Video file for job %s is missing at %s", job_id, path)
        raise HTTPException(status_code=404, detail="Video file not found.")

    filename = f"veo-video-{int(created_at.timestamp() * 1000)}{path.suffix}"
    return FileResponse(path, filename=filename)


@router.get("/health")
def health_check():
    return {"status": "ok"}
