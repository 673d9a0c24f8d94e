"""
Multi-channel domain discovery.

Channels run independently and in a fixed order (static list, API lookups,
web crawl). Their output is merged case-insensitively, first occurrence wins,
and then cut to the requested size. A failing channel or provider is recorded
in ``errors`` and the others still contribute.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict

import httpx

from leadpoacher.config import Settings
from leadpoacher.logging_utils import log_event
from leadpoacher.models import (
    CrawlResult,
    DiscoveryConfig,
    DiscoveryResult,
    DiscoveryStatistics,
    ProviderDomain,
)
from leadpoacher.services.classifier import BusinessClassifier
from leadpoacher.services.html_extractors import RegexPageExtractor
from leadpoacher.services.page_service import PageFetchError, PageService
from leadpoacher.services.rate_limiter import HostRateLimiter
from leadpoacher.services.robots import RobotsCache
from leadpoacher.services.seed_data import (
    ALLOWED_CRAWL_TLDS,
    CRAWL_SEEDS,
    FALLBACK_API_DOMAINS,
    NON_BUSINESS_HOSTS,
    STATIC_BUSINESS_DOMAINS,
)
from leadpoacher.utils.validators import normalize_domain

logger = logging.getLogger(__name__)

CHANNEL_STATIC = 'static'
CHANNEL_API = 'api'
CHANNEL_CRAWL = 'crawl'


class CrawlBlockedError(Exception):
    """robots.txt forbids fetching a URL."""


class DomainIntelligenceProvider(ABC):
    """
    External lookup proposing candidate business domains.
    """

    name: str = 'provider'

    @abstractmethod
    async def lookup(self, client: httpx.AsyncClient, limit: int) -> list[ProviderDomain]:
        """
        Return at most ``limit`` candidate domains.
        """


class CommonCrawlProvider(DomainIntelligenceProvider):
    name = 'common_crawl'

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def lookup(self, client: httpx.AsyncClient, limit: int) -> list[ProviderDomain]:
        response = await asyncio.wait_for(
            client.get(
                self.settings.commoncrawl_index_url,
                params={
                    'url': self.settings.commoncrawl_url_pattern,
                    'output': 'json',
                    'limit': max(limit * 3, 1),
                },
                timeout=self.settings.request_timeout_seconds,
            ),
            self.settings.request_timeout_seconds,
        )
        response.raise_for_status()

        found: OrderedDict[str, ProviderDomain] = OrderedDict()
        for line in response.text.splitlines():
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except ValueError:
                continue
            domain = normalize_domain(str(record.get('url', '')))
            if domain and domain not in found:
                found[domain] = ProviderDomain(domain=domain, confidence=0.6)
            if len(found) >= limit:
                break
        return list(found.values())


class ConfiguredApiProvider(DomainIntelligenceProvider):
    name = 'domain_api'

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def lookup(self, client: httpx.AsyncClient, limit: int) -> list[ProviderDomain]:
        if not self.settings.domain_api_url or not self.settings.domain_api_key:
            return []

        response = await asyncio.wait_for(
            client.get(
                self.settings.domain_api_url,
                params={'limit': limit},
                headers={'Authorization': f'Bearer {self.settings.domain_api_key}'},
                timeout=self.settings.request_timeout_seconds,
            ),
            self.settings.request_timeout_seconds,
        )
        response.raise_for_status()
        payload = response.json()

        results: list[ProviderDomain] = []
        for entry in payload.get('domains', []):
            if isinstance(entry, str):
                raw, confidence = entry, 0.5
            elif isinstance(entry, dict):
                raw, confidence = str(entry.get('domain', '')), float(entry.get('confidence', 0.5))
            else:
                continue
            domain = normalize_domain(raw)
            if domain:
                results.append(ProviderDomain(domain=domain, confidence=min(max(confidence, 0.0), 1.0)))
        return results[:limit]


class StaticFallbackProvider(DomainIntelligenceProvider):
    name = 'fallback'

    def __init__(self, domains: tuple[str, ...] = FALLBACK_API_DOMAINS) -> None:
        self.domains = domains

    async def lookup(self, client: httpx.AsyncClient, limit: int) -> list[ProviderDomain]:
        return [ProviderDomain(domain=domain, confidence=0.3) for domain in self.domains[:limit]]


class BusinessWebCrawler:
    """
    Crawls seed portal pages for outbound links and keeps business-like domains.
    """

    def __init__(
        self,
        settings: Settings,
        page_service: PageService,
        *,
        extractor: RegexPageExtractor | None = None,
        seeds: tuple[str, ...] = CRAWL_SEEDS,
    ) -> None:
        self.settings = settings
        self.page_service = page_service
        self.extractor = extractor or page_service.extractor
        self.seeds = seeds

    async def crawl(
        self, client: httpx.AsyncClient, max_domains: int, config: DiscoveryConfig
    ) -> list[CrawlResult]:
        classifier = BusinessClassifier(config.min_business_confidence)
        limiter = HostRateLimiter(config.crawl_delay_seconds)
        robots = (
            RobotsCache(client, timeout_seconds=self.settings.request_timeout_seconds)
            if config.respect_robots_txt
            else None
        )

        results: list[CrawlResult] = []
        seen: set[str] = set()
        for seed in self.seeds:
            if len(seen) >= max_domains:
                break
            started = time.monotonic()
            result = CrawlResult(source_url=seed)
            results.append(result)

            try:
                html = await self._polite_fetch(client, seed, limiter, robots)
            except (httpx.HTTPError, PageFetchError, CrawlBlockedError) as exc:
                result.errors.append(f'Seed {seed} failed: {exc}')
                result.processing_time = time.monotonic() - started
                continue

            seed_domain = normalize_domain(seed) or ''
            candidates = [
                domain
                for domain in self.extractor.extract_domains(html, exclude=(seed_domain, *NON_BUSINESS_HOSTS))
                if domain.rsplit('.', 1)[-1] in ALLOWED_CRAWL_TLDS and domain not in seen
            ][: config.max_domains_per_seed]

            for domain in candidates:
                if len(seen) >= max_domains:
                    break
                homepage = f'https://{domain}/'
                try:
                    page = await self._polite_fetch(client, homepage, limiter, robots)
                except (httpx.HTTPError, PageFetchError, CrawlBlockedError) as exc:
                    result.errors.append(f'Domain {domain} failed: {exc}')
                    continue

                indicators, confidence = classifier.classify(page)
                if confidence >= config.min_business_confidence:
                    seen.add(domain)
                    result.discovered_domains.append(domain)
                    result.business_indicators[domain] = indicators

            result.processing_time = time.monotonic() - started
            log_event(
                logger,
                logging.INFO,
                'crawl_seed_complete',
                seed=seed,
                domains_found=len(result.discovered_domains),
                errors=len(result.errors),
            )
        return results

    async def _polite_fetch(
        self,
        client: httpx.AsyncClient,
        url: str,
        limiter: HostRateLimiter,
        robots: RobotsCache | None,
    ) -> str:
        crawl_delay = None
        if robots is not None:
            verdict = await robots.lookup(url, self.settings.user_agent)
            if not verdict.allowed:
                raise CrawlBlockedError(f'Robots.txt disallows {url}')
            crawl_delay = verdict.crawl_delay
        await limiter.wait(url, crawl_delay)
        return await self.page_service.fetch_html(client, url)


class DomainDiscoveryService:
    def __init__(
        self,
        settings: Settings,
        *,
        page_service: PageService | None = None,
        providers: list[DomainIntelligenceProvider] | None = None,
        fallback_provider: DomainIntelligenceProvider | None = None,
        crawler: BusinessWebCrawler | None = None,
        static_domains: tuple[str, ...] = STATIC_BUSINESS_DOMAINS,
    ) -> None:
        self.settings = settings
        self.page_service = page_service or PageService(settings)
        self.providers = (
            providers if providers is not None else [CommonCrawlProvider(settings), ConfiguredApiProvider(settings)]
        )
        self.fallback_provider = fallback_provider or StaticFallbackProvider()
        self.crawler = crawler or BusinessWebCrawler(settings, self.page_service)
        self.static_domains = static_domains

    def default_config(self) -> DiscoveryConfig:
        return DiscoveryConfig(
            enable_static_list=self.settings.enable_static_list,
            enable_api_discovery=self.settings.enable_api_discovery,
            enable_web_crawling=self.settings.enable_web_crawling,
            max_domains_per_source=self.settings.max_domains_per_source,
            max_domains_per_seed=self.settings.max_domains_per_seed,
            crawl_delay_seconds=self.settings.crawl_delay_seconds,
            respect_robots_txt=self.settings.respect_robots_txt,
            min_business_confidence=self.settings.min_business_confidence,
        )

    def get_domains_to_check(self, limit: int) -> list[str]:
        """Flat static domain list for callers that predate discovery channels."""
        if limit <= 0:
            return []
        return self._static_domains(limit)

    async def discover_domains(
        self,
        max_domains: int,
        config: DiscoveryConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> DiscoveryResult:
        config = config or self.default_config()
        result = DiscoveryResult()
        if max_domains <= 0:
            return result

        started = time.monotonic()
        needs_network = config.enable_api_discovery or config.enable_web_crawling
        if client is None and needs_network:
            async with httpx.AsyncClient() as own_client:
                channel_domains = await self._run_channels(own_client, max_domains, config, result)
        else:
            channel_domains = await self._run_channels(client, max_domains, config, result)

        merged: OrderedDict[str, None] = OrderedDict()
        raw_total = 0
        for channel, domains in channel_domains:
            result.sources[channel] = len(domains)
            raw_total += len(domains)
            for domain in domains:
                merged.setdefault(domain.lower(), None)

        result.statistics.duplicates_removed = raw_total - len(merged)
        result.domains = list(merged)[:max_domains]
        result.statistics.duration_seconds = round(time.monotonic() - started, 3)

        log_event(
            logger,
            logging.INFO,
            'discovery_complete',
            max_domains=max_domains,
            total_discovered=result.total_discovered,
            sources=result.sources,
            errors=len(result.errors),
        )
        return result

    async def _run_channels(
        self,
        client: httpx.AsyncClient | None,
        max_domains: int,
        config: DiscoveryConfig,
        result: DiscoveryResult,
    ) -> list[tuple[str, list[str]]]:
        per_source = min(max_domains, config.max_domains_per_source)
        channel_domains: list[tuple[str, list[str]]] = []

        if config.enable_static_list:
            try:
                static = self._static_domains(per_source)
                result.statistics.static_count = len(static)
                channel_domains.append((CHANNEL_STATIC, static))
            except Exception as exc:
                self._record_channel_error(result, CHANNEL_STATIC, exc)

        if config.enable_api_discovery and client is not None:
            try:
                api_domains = await self._discover_from_apis(client, per_source, result)
                result.statistics.api_count = len(api_domains)
                channel_domains.append((CHANNEL_API, api_domains))
            except Exception as exc:
                self._record_channel_error(result, CHANNEL_API, exc)

        if config.enable_web_crawling and client is not None:
            try:
                crawl_results = await self.crawler.crawl(client, per_source, config)
                crawled = [domain for crawl in crawl_results for domain in crawl.discovered_domains]
                for crawl in crawl_results:
                    result.errors.extend(crawl.errors)
                result.statistics.crawl_count = len(crawled)
                channel_domains.append((CHANNEL_CRAWL, crawled))
            except Exception as exc:
                self._record_channel_error(result, CHANNEL_CRAWL, exc)

        return channel_domains

    async def _discover_from_apis(
        self, client: httpx.AsyncClient, limit: int, result: DiscoveryResult
    ) -> list[str]:
        found: OrderedDict[str, ProviderDomain] = OrderedDict()
        breakdown: dict[str, int] = {}

        for provider in self.providers:
            try:
                entries = await provider.lookup(client, limit)
            except (httpx.HTTPError, asyncio.TimeoutError, ValueError, TypeError) as exc:
                reason = str(exc) or exc.__class__.__name__
                result.errors.append(f'API provider {provider.name} failed: {reason}')
                log_event(logger, logging.WARNING, 'api_provider_failed', provider=provider.name, error=reason)
                entries = []
            breakdown[provider.name] = len(entries)
            for entry in entries:
                found.setdefault(entry.domain, entry)

        if not found:
            entries = await self.fallback_provider.lookup(client, limit)
            breakdown[self.fallback_provider.name] = len(entries)
            for entry in entries:
                found.setdefault(entry.domain, entry)

        result.statistics.api_breakdown = breakdown
        if found:
            average = sum(entry.confidence for entry in found.values()) / len(found)
            result.statistics.avg_api_confidence = round(average, 4)
        return list(found)[:limit]

    def _static_domains(self, limit: int) -> list[str]:
        return list(OrderedDict.fromkeys(domain.lower() for domain in self.static_domains))[:limit]

    @staticmethod
    def _record_channel_error(result: DiscoveryResult, channel: str, exc: Exception) -> None:
        result.errors.append(f'Discovery channel {channel} failed: {exc}')
        log_event(logger, logging.ERROR, 'discovery_channel_failed', channel=channel, error=str(exc))
