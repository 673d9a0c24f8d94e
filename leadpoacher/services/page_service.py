from __future__ import annotations

import asyncio
import logging

import httpx

from leadpoacher.config import Settings
from leadpoacher.logging_utils import log_event
from leadpoacher.models import FetchOutcome
from leadpoacher.services.html_extractors import RegexPageExtractor

logger = logging.getLogger(__name__)


class PageFetchError(Exception):
    """A page answered with an error status or missed its deadline."""


def mentions_competitor(html: str, competitor: str) -> bool:
    # raw markup counts, attributes and comments included
    return competitor.lower() in html.lower()


class PageService:
    def __init__(self, settings: Settings, extractor: RegexPageExtractor | None = None) -> None:
        self.settings = settings
        self.extractor = extractor or RegexPageExtractor()

    async def fetch_html(
        self,
        client: httpx.AsyncClient,
        url: str,
        *,
        timeout: float | None = None,
        user_agent: str | None = None,
    ) -> str:
        """GET ``url`` and return its body; ``timeout`` bounds the whole request, body included."""
        deadline = timeout if timeout is not None else self.settings.request_timeout_seconds
        request = client.get(
            url,
            headers={'User-Agent': user_agent or self.settings.user_agent},
            timeout=deadline,
            follow_redirects=True,
        )
        try:
            response = await asyncio.wait_for(request, deadline)
        except asyncio.TimeoutError as exc:
            raise PageFetchError(f'Timed out after {deadline:g}s') from exc
        if response.status_code >= 400:
            raise PageFetchError(f'Failed to fetch: {response.status_code}')
        return response.text

    async def fetch_and_verify(self, client: httpx.AsyncClient, url: str, competitor: str) -> FetchOutcome:
        log_event(logger, logging.DEBUG, 'extract_start', url=url, competitor=competitor)
        try:
            html = await self.fetch_html(client, url)
        except (httpx.HTTPError, PageFetchError) as exc:
            reason = str(exc) or exc.__class__.__name__
            log_event(logger, logging.WARNING, 'extract_failed', url=url, error=reason)
            return FetchOutcome(url=url, error=f'Failed to process {url}: {reason}')

        if not mentions_competitor(html, competitor):
            log_event(logger, logging.DEBUG, 'extract_skip', url=url, reason='competitor_not_mentioned')
            return FetchOutcome(url=url)

        leads = self.extractor.extract_leads(html, url)
        log_event(logger, logging.INFO, 'extract_complete', url=url, leads_found=len(leads))
        return FetchOutcome(url=url, leads=leads, competitor_mentioned=True)

    async def fetch_company_name(self, client: httpx.AsyncClient, url: str, domain: str) -> str | None:
        """Second fetch of ``url`` to read the company display name; ``None`` when the page is unavailable."""
        try:
            html = await self.fetch_html(
                client,
                url,
                timeout=self.settings.name_fetch_timeout_seconds,
                user_agent=self.settings.name_fetch_user_agent,
            )
        except (httpx.HTTPError, PageFetchError) as exc:
            log_event(logger, logging.WARNING, 'company_name_fetch_failed', url=url, error=str(exc))
            return None
        return self.extractor.extract_company_name(html, domain)
