from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobState(str, Enum):
    QUEUED = 'queued'
    RUNNING = 'running'
    DONE = 'done'
    ERROR = 'error'


class LeadStatus(str, Enum):
    NEW = 'new'
    CONTACTED = 'contacted'
    QUALIFIED = 'qualified'
    CONVERTED = 'converted'
    REJECTED = 'rejected'


class ScrapeState(str, Enum):
    IDLE = 'idle'
    SEARCHING = 'searching'
    EXTRACTING = 'extracting'
    DONE = 'done'
    FAILED = 'failed'


class ProgressPhase(str, Enum):
    INIT = 'init'
    DOMAIN_DISCOVERY = 'domain_discovery'
    PRIVACY_CRAWL = 'privacy_crawl'
    LEAD_EXTRACTION = 'lead_extraction'
    STORAGE = 'storage'
    COMPLETE = 'complete'


class ProgressEventType(str, Enum):
    PROGRESS = 'progress'
    ERROR = 'error'
    COMPLETE = 'complete'
    WARNING = 'warning'


# Scraping pipeline values


class SearchResult(BaseModel):
    title: str
    url: str
    snippet: str = ''


class ExtractedLead(BaseModel):
    email: str
    name: str | None = None
    source_url: str
    domain: str


class CompanyRecord(BaseModel):
    domain: str
    name: str


class ScrapingResult(BaseModel):
    competitor: str
    search_results: list[SearchResult] = Field(default_factory=list)
    leads: list[ExtractedLead] = Field(default_factory=list)
    companies: list[CompanyRecord] = Field(default_factory=list)
    total_searched: int = 0
    total_leads_found: int = 0
    errors: list[str] = Field(default_factory=list)
    domains_checked: int = 0
    privacy_pages_found: int = 0
    competitor_mentions_found: int = 0


class SearchOutcome(BaseModel):
    results: list[SearchResult] = Field(default_factory=list)
    error: str | None = None


class FetchOutcome(BaseModel):
    url: str
    leads: list[ExtractedLead] = Field(default_factory=list)
    competitor_mentioned: bool = False
    error: str | None = None


# Discovery


class DiscoveryConfig(BaseModel):
    enable_static_list: bool = True
    enable_api_discovery: bool = False
    enable_web_crawling: bool = False
    max_domains_per_source: int = Field(default=500, ge=0)
    max_domains_per_seed: int = Field(default=100, ge=0)
    crawl_delay_seconds: float = Field(default=1.0, ge=0.0)
    respect_robots_txt: bool = True
    min_business_confidence: float = Field(default=0.3, ge=0.0, le=1.0)


class DiscoveryStatistics(BaseModel):
    static_count: int = 0
    api_count: int = 0
    crawl_count: int = 0
    duplicates_removed: int = 0
    api_breakdown: dict[str, int] = Field(default_factory=dict)
    avg_api_confidence: float = 0.0
    duration_seconds: float = 0.0


class DiscoveryResult(BaseModel):
    domains: list[str] = Field(default_factory=list)
    sources: dict[str, int] = Field(default_factory=dict)
    statistics: DiscoveryStatistics = Field(default_factory=DiscoveryStatistics)
    errors: list[str] = Field(default_factory=list)

    @property
    def total_discovered(self) -> int:
        return len(self.domains)


class ProviderDomain(BaseModel):
    domain: str
    confidence: float = 0.5


class BusinessIndicator(BaseModel):
    has_legal_notice: bool = False
    has_vat_number: bool = False
    has_local_language: bool = False
    has_business_keywords: bool = False
    has_contact_info: bool = False
    has_privacy_policy: bool = False


class CrawlResult(BaseModel):
    source_url: str
    discovered_domains: list[str] = Field(default_factory=list)
    business_indicators: dict[str, BusinessIndicator] = Field(default_factory=dict)
    processing_time: float = 0.0
    errors: list[str] = Field(default_factory=list)


# Stored entities


class ScrapeJob(BaseModel):
    id: str
    competitor: str
    state: JobState = JobState.QUEUED
    requested_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    error_message: str | None = None


class Company(BaseModel):
    id: str
    domain: str
    name: str
    created_at: datetime = Field(default_factory=utcnow)


class Lead(BaseModel):
    id: str
    company_id: str
    contact_name: str | None = None
    contact_email: str
    source_url: str
    status: LeadStatus = LeadStatus.NEW
    note: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class StorageSummary(BaseModel):
    saved_companies: int = 0
    saved_leads: int = 0


class ProgressEvent(BaseModel):
    job_id: str
    type: ProgressEventType = ProgressEventType.PROGRESS
    phase: ProgressPhase
    operation: str
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    details: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)
    errors: list[str] | None = None


# API payloads


class CreateJobRequest(BaseModel):
    competitor: str


class ScrapeRequest(BaseModel):
    job_id: str | None = None
    competitor: str | None = None


class JobResponse(BaseModel):
    id: str
    competitor: str
    state: JobState
    requested_at: datetime
    completed_at: datetime | None = None
    error_message: str | None = None


class RejectedRow(BaseModel):
    row: int
    value: str
    reason: str


class UploadResponse(BaseModel):
    jobs: list[JobResponse]
    total: int
    rejected: list[RejectedRow] = Field(default_factory=list)


class ScrapeRunSummary(BaseModel):
    total_searched: int
    total_leads_found: int
    domains_checked: int
    privacy_pages_found: int
    competitor_mentions_found: int
    saved_companies: int
    saved_leads: int
    errors: list[str]


class ScrapeResponse(BaseModel):
    success: bool
    job_id: str
    competitor: str
    results: ScrapeRunSummary


class LeadWithCompany(BaseModel):
    lead: Lead
    company: Company


class LeadUpdateRequest(BaseModel):
    status: LeadStatus | None = None
    note: str | None = None
