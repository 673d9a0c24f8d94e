from __future__ import annotations

import asyncio
import html as html_lib
import logging
import re
from urllib.parse import parse_qs, urlparse

import httpx

from leadpoacher.config import Settings
from leadpoacher.logging_utils import log_event
from leadpoacher.models import SearchOutcome, SearchResult
from leadpoacher.services.html_extractors import strip_tags

logger = logging.getLogger(__name__)

ANCHOR_PATTERN = re.compile(r'<a\b([^>]*)>(.*?)</a>', re.IGNORECASE | re.DOTALL)
CLASS_ATTR_PATTERN = re.compile(r'class\s*=\s*["\']([^"\']*)["\']', re.IGNORECASE)
HREF_ATTR_PATTERN = re.compile(r'href\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)

EXCLUDED_HOSTS = {
    'duckduckgo.com',
    'wikipedia.org',
    'facebook.com',
    'twitter.com',
    'x.com',
    'instagram.com',
    'linkedin.com',
    'tiktok.com',
    'youtube.com',
    'youtu.be',
    'vimeo.com',
}


def build_query(competitor: str) -> str:
    return f'"{competitor}" contact email'


def unwrap_result_url(href: str) -> str:
    """Turn a search redirect link into its target URL."""
    url = html_lib.unescape(href.strip())
    if url.startswith('//'):
        url = f'https:{url}'

    parsed = urlparse(url)
    if parsed.netloc.endswith('duckduckgo.com') and parsed.path.startswith('/l/'):
        target = parse_qs(parsed.query).get('uddg')
        if target:
            url = target[0]

    if not url.startswith('http'):
        url = f'https://{url}'
    return url


def is_excluded_url(url: str) -> bool:
    try:
        host = (urlparse(url).hostname or '').lower()
    except ValueError:
        return True
    if not host:
        return True
    return any(host == excluded or host.endswith('.' + excluded) for excluded in EXCLUDED_HOSTS)


def parse_search_results(html: str, max_results: int) -> list[SearchResult]:
    results: list[SearchResult] = []
    seen_urls: set[str] = set()
    last_kept: SearchResult | None = None

    for match in ANCHOR_PATTERN.finditer(html):
        attrs, inner = match.group(1), match.group(2)
        class_match = CLASS_ATTR_PATTERN.search(attrs)
        classes = class_match.group(1).split() if class_match else []

        if 'result__snippet' in classes:
            if last_kept is not None and not last_kept.snippet:
                last_kept.snippet = ' '.join(html_lib.unescape(strip_tags(inner)).split())
            continue
        if 'result__a' not in classes:
            continue

        last_kept = None
        if len(results) >= max_results:
            break

        href_match = HREF_ATTR_PATTERN.search(attrs)
        if not href_match:
            continue
        url = unwrap_result_url(href_match.group(1))
        if is_excluded_url(url) or url in seen_urls:
            continue

        title = ' '.join(html_lib.unescape(strip_tags(inner)).split())
        result = SearchResult(title=title, url=url)
        seen_urls.add(url)
        results.append(result)
        last_kept = result

    return results


class MentionSearchService:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    async def search_mentions(
        self, client: httpx.AsyncClient, competitor: str, max_results: int
    ) -> SearchOutcome:
        log_event(logger, logging.INFO, 'search_start', competitor=competitor, max_results=max_results)
        deadline = self.settings.search_timeout_seconds
        try:
            response = await asyncio.wait_for(
                client.get(
                    self.settings.search_url,
                    params={'q': build_query(competitor)},
                    headers={'User-Agent': self.settings.user_agent},
                    timeout=deadline,
                    follow_redirects=True,
                ),
                deadline,
            )
            if response.status_code >= 300:
                raise httpx.HTTPStatusError(
                    f'Search failed: {response.status_code} {response.reason_phrase}',
                    request=response.request,
                    response=response,
                )
        except asyncio.TimeoutError:
            reason = f'Timed out after {deadline:g}s'
            log_event(logger, logging.WARNING, 'search_failed', competitor=competitor, error=reason)
            return SearchOutcome(error=f'Search request failed: {reason}')
        except httpx.HTTPError as exc:
            log_event(logger, logging.WARNING, 'search_failed', competitor=competitor, error=str(exc))
            return SearchOutcome(error=f'Search request failed: {exc}')

        results = parse_search_results(response.text, max_results)
        log_event(logger, logging.INFO, 'search_complete', competitor=competitor, results_found=len(results))
        return SearchOutcome(results=results)
