"""
Scrape orchestration: discovery, privacy-page crawl, mention search, page
extraction and aggregation into one :class:`ScrapingResult`.

Per-page failures never leave the extracting state; they are appended to
``ScrapingResult.errors``. Only an exception escaping the run itself moves the
orchestrator to ``failed`` and is re-raised to the caller.
"""

from __future__ import annotations

import logging
import time

import httpx

from leadpoacher.config import Settings
from leadpoacher.logging_utils import log_event
from leadpoacher.models import (
    CompanyRecord,
    DiscoveryConfig,
    ProgressEventType,
    ProgressPhase,
    ScrapeState,
    ScrapingResult,
)
from leadpoacher.services.discovery_service import DomainDiscoveryService
from leadpoacher.services.html_extractors import RegexPageExtractor
from leadpoacher.services.page_service import PageService
from leadpoacher.services.progress import LoggingObserver, ScrapeObserver
from leadpoacher.services.search_service import MentionSearchService
from leadpoacher.services.work_queue import PageWorkQueue


logger = logging.getLogger(__name__)

NO_RESULTS_ERROR = 'No search results found for competitor'
SCRAPE_FAILED_ERROR = 'Scrape run failed'


class ScrapeOrchestrator:
    def __init__(
        self,
        settings: Settings,
        *,
        observer: ScrapeObserver | None = None,
        extractor: RegexPageExtractor | None = None,
        search_service: MentionSearchService | None = None,
        page_service: PageService | None = None,
        discovery_service: DomainDiscoveryService | None = None,
    ) -> None:
        self.settings = settings
        self.observer = observer or LoggingObserver()
        self.extractor = extractor or RegexPageExtractor()
        self.search_service = search_service or MentionSearchService(settings)
        self.page_service = page_service or PageService(settings, self.extractor)
        self.discovery_service = discovery_service or DomainDiscoveryService(settings, page_service=self.page_service)
        self.state = ScrapeState.IDLE

    async def run(
        self,
        competitor: str,
        max_results: int | None = None,
        *,
        domain_budget: int = 0,
        discovery_config: DiscoveryConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> ScrapingResult:
        max_results = max_results or self.settings.max_search_results
        started = time.monotonic()
        self.state = ScrapeState.SEARCHING
        await self.observer.emit(
            ProgressPhase.INIT,
            'scrape_start',
            0.0,
            competitor=competitor,
            max_results=max_results,
            domain_budget=domain_budget,
        )

        try:
            if client is None:
                async with httpx.AsyncClient() as own_client:
                    result = await self._run(own_client, competitor, max_results, domain_budget, discovery_config)
            else:
                result = await self._run(client, competitor, max_results, domain_budget, discovery_config)
        except Exception as exc:
            self.state = ScrapeState.FAILED
            log_event(logger, logging.ERROR, 'scrape_failed', competitor=competitor, error=str(exc))
            await self.observer.emit(
                ProgressPhase.LEAD_EXTRACTION,
                'scrape_failed',
                1.0,
                event_type=ProgressEventType.ERROR,
                errors=[SCRAPE_FAILED_ERROR],
                competitor=competitor,
            )
            raise

        self.state = ScrapeState.DONE
        await self.observer.emit(
            ProgressPhase.LEAD_EXTRACTION,
            'scrape_complete',
            1.0,
            competitor=competitor,
            duration_seconds=round(time.monotonic() - started, 3),
            leads_found=result.total_leads_found,
            companies_found=len(result.companies),
            error_count=len(result.errors),
        )
        return result

    async def _run(
        self,
        client: httpx.AsyncClient,
        competitor: str,
        max_results: int,
        domain_budget: int,
        discovery_config: DiscoveryConfig | None,
    ) -> ScrapingResult:
        result = ScrapingResult(competitor=competitor)

        privacy_pages: list[str] = []
        if domain_budget > 0:
            domains = await self._discover(client, domain_budget, discovery_config, result)
            privacy_pages = await self._crawl_privacy_pages(client, domains, result)

        outcome = await self.search_service.search_mentions(client, competitor, max_results)
        result.search_results = outcome.results
        result.total_searched = len(outcome.results)
        if outcome.error:
            result.errors.append(outcome.error)
        if not outcome.results:
            result.errors.append(NO_RESULTS_ERROR)
        await self.observer.emit(
            ProgressPhase.LEAD_EXTRACTION,
            'search_complete',
            0.45,
            results_found=result.total_searched,
        )

        pages = list(dict.fromkeys([item.url for item in outcome.results] + privacy_pages))
        self.state = ScrapeState.EXTRACTING
        await self._extract(client, competitor, pages, result)
        result.total_leads_found = len(result.leads)
        return result

    async def _discover(
        self,
        client: httpx.AsyncClient,
        domain_budget: int,
        discovery_config: DiscoveryConfig | None,
        result: ScrapingResult,
    ) -> list[str]:
        await self.observer.emit(ProgressPhase.DOMAIN_DISCOVERY, 'discovery_start', 0.05, domain_budget=domain_budget)
        discovery = await self.discovery_service.discover_domains(domain_budget, discovery_config, client=client)
        result.errors.extend(discovery.errors)
        result.domains_checked = discovery.total_discovered
        await self.observer.emit(
            ProgressPhase.DOMAIN_DISCOVERY,
            'discovery_complete',
            0.15,
            domains_found=discovery.total_discovered,
            sources=discovery.sources,
        )
        return discovery.domains

    async def _crawl_privacy_pages(
        self, client: httpx.AsyncClient, domains: list[str], result: ScrapingResult
    ) -> list[str]:
        found: list[str] = []
        processed = 0

        async def check_domain(domain: str) -> None:
            nonlocal processed
            homepage = f'https://{domain}/'
            try:
                html = await self.page_service.fetch_html(client, homepage)
                privacy_url = self.extractor.find_privacy_policy_url(html, homepage)
                if privacy_url:
                    found.append(privacy_url)
            except Exception as exc:  # recoverable per-domain failure
                result.errors.append(f'Failed to crawl {homepage}: {exc}')
            processed += 1
            await self.observer.emit(
                ProgressPhase.PRIVACY_CRAWL,
                'domain_checked',
                0.15 + 0.25 * processed / len(domains),
                domain=domain,
                privacy_pages_found=len(found),
            )

        queue: PageWorkQueue[str] = PageWorkQueue(self.settings.worker_concurrency, self.settings.page_delay_seconds)
        await queue.run(domains, check_domain)
        result.privacy_pages_found = len(found)
        return found

    async def _extract(
        self,
        client: httpx.AsyncClient,
        competitor: str,
        pages: list[str],
        result: ScrapingResult,
    ) -> None:
        seen_leads: set[tuple[str, str]] = set()
        company_domains: set[str] = set()
        processed = 0

        async def process(url: str) -> None:
            nonlocal processed
            try:
                outcome = await self.page_service.fetch_and_verify(client, url, competitor)
                if outcome.error:
                    result.errors.append(outcome.error)
                if outcome.competitor_mentioned:
                    result.competitor_mentions_found += 1

                for lead in outcome.leads:
                    key = (lead.domain, lead.email)
                    if key in seen_leads:
                        continue
                    seen_leads.add(key)
                    result.leads.append(lead)

                    if lead.domain in company_domains:
                        continue
                    company_domains.add(lead.domain)
                    name = await self.page_service.fetch_company_name(client, url, lead.domain)
                    if name is None:
                        name = self.extractor.extract_company_name('', lead.domain)
                    result.companies.append(CompanyRecord(domain=lead.domain, name=name))
            except Exception as exc:  # recoverable per-page failure
                result.errors.append(f'Failed to process {url}: {exc}')

            processed += 1
            await self.observer.emit(
                ProgressPhase.LEAD_EXTRACTION,
                'page_processed',
                0.45 + 0.5 * processed / len(pages),
                url=url,
                leads_found=len(result.leads),
            )

        queue: PageWorkQueue[str] = PageWorkQueue(self.settings.worker_concurrency, self.settings.page_delay_seconds)
        await queue.run(pages, process)
