from __future__ import annotations

import asyncio
import uuid
from datetime import timedelta

from leadpoacher.models import JobState, ScrapeJob, utcnow
from leadpoacher.utils.validators import is_valid_competitor, normalize_competitor_name


class JobValidationError(ValueError):
    status_code = 400


class JobNotFoundError(JobValidationError):
    status_code = 404


class JobStateError(JobValidationError):
    status_code = 409


class JobManager:
    def __init__(self, dedupe_window_seconds: int = 300) -> None:
        self.dedupe_window = timedelta(seconds=dedupe_window_seconds)
        self._jobs: dict[str, ScrapeJob] = {}
        self._lock = asyncio.Lock()

    async def create_job(self, competitor: str) -> ScrapeJob:
        """Queue a job, or return the one requested for the same competitor inside the dedupe window."""
        if not is_valid_competitor(competitor):
            raise JobValidationError('Competitor name is required (minimum 2 characters)')
        name = normalize_competitor_name(competitor)

        async with self._lock:
            cutoff = utcnow() - self.dedupe_window
            recent = [
                job for job in self._jobs.values() if job.competitor == name and job.requested_at >= cutoff
            ]
            if recent:
                return max(recent, key=lambda job: job.requested_at).model_copy()

            job = ScrapeJob(id=str(uuid.uuid4()), competitor=name)
            self._jobs[job.id] = job
            return job.model_copy()

    async def get_job(self, job_id: str) -> ScrapeJob | None:
        async with self._lock:
            job = self._jobs.get(job_id)
            return job.model_copy() if job else None

    async def list_jobs(self, state: JobState | None = None, limit: int = 50) -> list[ScrapeJob]:
        async with self._lock:
            jobs = [job for job in self._jobs.values() if state is None or job.state == state]
        jobs.sort(key=lambda job: job.requested_at, reverse=True)
        return [job.model_copy() for job in jobs[:limit]]

    async def start_job(self, job_id: str, competitor: str) -> ScrapeJob:
        """Move a queued job whose competitor matches to running."""
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError('Scrape job not found')
            if job.state != JobState.QUEUED:
                raise JobStateError(f"Job is in '{job.state.value}' state, cannot process")
            if job.competitor.strip() != normalize_competitor_name(competitor):
                raise JobValidationError('Competitor name does not match job')
            job.state = JobState.RUNNING
            return job.model_copy()

    async def set_state(self, job_id: str, state: JobState, error: str | None = None) -> None:
        async with self._lock:
            job = self._jobs[job_id]
            job.state = state
            job.error_message = error
            if state in (JobState.DONE, JobState.ERROR):
                job.completed_at = utcnow()
