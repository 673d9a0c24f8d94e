from functools import lru_cache

from fastapi import Depends

from leadpoacher.config import Settings, get_settings
from leadpoacher.jobs.job_manager import JobManager
from leadpoacher.jobs.lead_store import LeadStore
from leadpoacher.jobs.processor import JobProcessor
from leadpoacher.services.progress import ProgressBroker


@lru_cache
def get_job_manager() -> JobManager:
    return JobManager(dedupe_window_seconds=get_settings().job_dedupe_window_seconds)


@lru_cache
def get_lead_store() -> LeadStore:
    return LeadStore()


@lru_cache
def get_progress_broker() -> ProgressBroker:
    return ProgressBroker()


def get_job_processor(
    settings: Settings = Depends(get_settings),
    manager: JobManager = Depends(get_job_manager),
    store: LeadStore = Depends(get_lead_store),
    broker: ProgressBroker = Depends(get_progress_broker),
) -> JobProcessor:
    return JobProcessor(settings=settings, manager=manager, store=store, broker=broker)
