from __future__ import annotations

import time

import httpx
import pytest

from conftest import dripping_server
from leadpoacher.services.page_service import PageService, mentions_competitor

PAGE_URL = 'https://acme-partner.de/news'
MENTION_PAGE = (
    '<html><head><title>Partner Site - Home</title></head><body>'
    '<p>We switched away from Acme last year.</p>'
    '<p>Sales: Jane Doe, jane.doe@acme-partner.de</p>'
    '</body></html>'
)


def test_mentions_competitor_is_case_insensitive_over_markup() -> None:
    assert mentions_competitor('<meta content="ACME tools">', 'acme') is True
    assert mentions_competitor('<p>Other vendor</p>', 'Acme') is False


class TestFetchAndVerify:
    @pytest.mark.asyncio
    async def test_page_with_mention_yields_leads(self, settings, make_client) -> None:
        client, _ = make_client({PAGE_URL: (200, MENTION_PAGE)})

        async with client:
            outcome = await PageService(settings).fetch_and_verify(client, PAGE_URL, 'Acme')

        assert outcome.error is None
        assert outcome.competitor_mentioned is True
        assert [(lead.email, lead.name) for lead in outcome.leads] == [('jane.doe@acme-partner.de', 'Jane Doe')]

    @pytest.mark.asyncio
    async def test_page_without_mention_is_skipped_silently(self, settings, make_client) -> None:
        client, _ = make_client({PAGE_URL: (200, '<p>contact: sales@acme-partner.de</p>')})

        async with client:
            outcome = await PageService(settings).fetch_and_verify(client, PAGE_URL, 'Globex')

        assert outcome.leads == []
        assert outcome.error is None
        assert outcome.competitor_mentioned is False

    @pytest.mark.asyncio
    async def test_error_status_is_reported(self, settings, make_client) -> None:
        client, _ = make_client({PAGE_URL: (500, 'boom')})

        async with client:
            outcome = await PageService(settings).fetch_and_verify(client, PAGE_URL, 'Acme')

        assert outcome.leads == []
        assert outcome.error == f'Failed to process {PAGE_URL}: Failed to fetch: 500'

    @pytest.mark.asyncio
    async def test_timeout_is_reported(self, settings, make_client) -> None:
        client, _ = make_client({PAGE_URL: httpx.ReadTimeout('timed out')})

        async with client:
            outcome = await PageService(settings).fetch_and_verify(client, PAGE_URL, 'Acme')

        assert outcome.error == f'Failed to process {PAGE_URL}: timed out'

    @pytest.mark.asyncio
    async def test_slow_body_is_cut_off_at_request_deadline(self, settings) -> None:
        """Bytes trickling in under the read timeout still cannot hold a page past its deadline."""
        bounded = settings.model_copy(update={'request_timeout_seconds': 1.0})

        async with dripping_server(b'<p>Acme</p>', interval=0.4) as base_url:
            async with httpx.AsyncClient(trust_env=False) as client:
                started = time.monotonic()
                outcome = await PageService(bounded).fetch_and_verify(client, f'{base_url}/news', 'Acme')
                elapsed = time.monotonic() - started

        assert elapsed < 2.0
        assert outcome.competitor_mentioned is False
        assert outcome.error == f'Failed to process {base_url}/news: Timed out after 1s'


class TestFetchCompanyName:
    @pytest.mark.asyncio
    async def test_reads_name_from_title_with_name_user_agent(self, settings) -> None:
        seen_agents: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen_agents.append(request.headers['User-Agent'])
            return httpx.Response(200, text=MENTION_PAGE)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            name = await PageService(settings).fetch_company_name(client, PAGE_URL, 'acme-partner.de')

        assert name == 'Partner Site'
        assert seen_agents == [settings.name_fetch_user_agent]

    @pytest.mark.asyncio
    async def test_unavailable_page_gives_none(self, settings, make_client) -> None:
        client, _ = make_client({})

        async with client:
            name = await PageService(settings).fetch_company_name(client, PAGE_URL, 'acme-partner.de')

        assert name is None
