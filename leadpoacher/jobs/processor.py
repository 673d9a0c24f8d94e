from __future__ import annotations

import logging
from typing import Callable

import httpx

from leadpoacher.config import Settings
from leadpoacher.jobs.job_manager import JobManager, JobValidationError
from leadpoacher.jobs.lead_store import LeadStore
from leadpoacher.logging_utils import log_event
from leadpoacher.models import (
    JobState,
    ProgressEventType,
    ProgressPhase,
    ScrapeResponse,
    ScrapeRunSummary,
)
from leadpoacher.services.progress import JobProgressReporter, ProgressBroker
from leadpoacher.services.scrape_orchestrator import ScrapeOrchestrator
from leadpoacher.utils.validators import is_valid_competitor, normalize_competitor_name

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10


class ScrapeJobFailed(Exception):
    """The run could not finish; the job has been marked ``error``."""


class JobProcessor:
    def __init__(
        self,
        settings: Settings,
        manager: JobManager,
        store: LeadStore,
        broker: ProgressBroker,
        client_factory: Callable[[], httpx.AsyncClient] = httpx.AsyncClient,
    ) -> None:
        self.settings = settings
        self.manager = manager
        self.store = store
        self.broker = broker
        self.client_factory = client_factory

    async def trigger(self, job_id: object, competitor: object) -> ScrapeResponse:
        if not isinstance(job_id, str) or not job_id:
            raise JobValidationError('Invalid or missing job id')
        if not is_valid_competitor(competitor):
            raise JobValidationError('Invalid or missing competitor name (minimum 2 characters)')
        name = normalize_competitor_name(competitor)

        await self.manager.start_job(job_id, name)
        log_event(logger, logging.INFO, 'job_start', job_id=job_id, competitor=name)

        reporter = JobProgressReporter(self.broker, job_id)
        try:
            orchestrator = ScrapeOrchestrator(self.settings, observer=reporter)
            async with self.client_factory() as client:
                result = await orchestrator.run(
                    name,
                    self.settings.max_search_results,
                    domain_budget=self.settings.domain_budget,
                    client=client,
                )

            await reporter.emit(
                ProgressPhase.STORAGE,
                'storage_start',
                0.96,
                companies=len(result.companies),
                leads=len(result.leads),
            )
            summary = await self.store.save_result(result)
            await self.manager.set_state(job_id, JobState.DONE)
        except Exception as exc:  # terminal fallback for job lifecycle
            await self.manager.set_state(job_id, JobState.ERROR, error=str(exc))
            await reporter.emit(
                ProgressPhase.COMPLETE,
                'job_failed',
                1.0,
                event_type=ProgressEventType.ERROR,
                errors=['Internal server error'],
            )
            raise ScrapeJobFailed(job_id) from exc

        await reporter.emit(
            ProgressPhase.COMPLETE,
            'job_complete',
            1.0,
            event_type=ProgressEventType.COMPLETE,
            saved_companies=summary.saved_companies,
            saved_leads=summary.saved_leads,
            error_count=len(result.errors),
        )

        return ScrapeResponse(
            success=True,
            job_id=job_id,
            competitor=name,
            results=ScrapeRunSummary(
                total_searched=result.total_searched,
                total_leads_found=result.total_leads_found,
                domains_checked=result.domains_checked,
                privacy_pages_found=result.privacy_pages_found,
                competitor_mentions_found=result.competitor_mentions_found,
                saved_companies=summary.saved_companies,
                saved_leads=summary.saved_leads,
                errors=result.errors[:MAX_REPORTED_ERRORS],
            ),
        )
