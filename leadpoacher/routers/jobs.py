from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, UploadFile

from leadpoacher.dependencies import get_job_manager, get_job_processor
from leadpoacher.jobs.job_manager import JobManager, JobValidationError
from leadpoacher.jobs.processor import JobProcessor, ScrapeJobFailed
from leadpoacher.models import (
    CreateJobRequest,
    JobResponse,
    JobState,
    ScrapeJob,
    ScrapeRequest,
    ScrapeResponse,
    UploadResponse,
)
from leadpoacher.utils.file_loader import load_competitor_list

router = APIRouter()


def _to_response(job: ScrapeJob) -> JobResponse:
    return JobResponse(**job.model_dump())


@router.post('/jobs', response_model=JobResponse)
async def create_job(payload: CreateJobRequest, manager: JobManager = Depends(get_job_manager)) -> JobResponse:
    try:
        job = await manager.create_job(payload.competitor)
    except JobValidationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    return _to_response(job)


@router.post('/jobs/upload', response_model=UploadResponse)
async def upload_competitors(file: UploadFile, manager: JobManager = Depends(get_job_manager)) -> UploadResponse:
    competitors = await load_competitor_list(file)
    jobs = [_to_response(await manager.create_job(name)) for name in competitors.names]
    return UploadResponse(jobs=jobs, total=len(jobs), rejected=competitors.rejected)


@router.get('/jobs', response_model=list[JobResponse])
async def list_jobs(
    state: JobState | None = None,
    limit: int = 50,
    manager: JobManager = Depends(get_job_manager),
) -> list[JobResponse]:
    return [_to_response(job) for job in await manager.list_jobs(state=state, limit=limit)]


@router.get('/jobs/{job_id}', response_model=JobResponse)
async def get_job_status(job_id: str, manager: JobManager = Depends(get_job_manager)) -> JobResponse:
    job = await manager.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail='Job not found')
    return _to_response(job)


@router.post('/scrape', response_model=ScrapeResponse)
async def trigger_scrape(payload: ScrapeRequest, processor: JobProcessor = Depends(get_job_processor)) -> ScrapeResponse:
    try:
        return await processor.trigger(payload.job_id, payload.competitor)
    except JobValidationError as exc:
        raise HTTPException(status_code=exc.status_code, detail=str(exc)) from exc
    except ScrapeJobFailed as exc:
        raise HTTPException(status_code=500, detail='Internal server error') from exc
