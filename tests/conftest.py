from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable
from urllib.parse import quote

import httpx
import pytest

from leadpoacher.config import Settings

SEARCH_URL = 'https://search.test/html/'

Route = tuple[int, str] | Exception


def search_page(*urls: str) -> str:
    """Search response HTML with one redirect-wrapped result anchor per url."""
    rows = []
    for index, url in enumerate(urls):
        href = f'//duckduckgo.com/l/?uddg={quote(url, safe="")}&amp;rut=abc{index}'
        rows.append(
            f'<div class="result"><h2><a rel="nofollow" class="result__a" href="{href}">Result {index}</a></h2>'
            f'<a class="result__snippet" href="{href}">Snippet <b>{index}</b></a></div>'
        )
    return '<html><body>' + ''.join(rows) + '</body></html>'


class RecordingTransport(httpx.MockTransport):
    """MockTransport answering from a url -> (status, body) table and recording requested urls."""

    def __init__(self, routes: dict[str, Route]) -> None:
        self.routes = routes
        self.requested: list[str] = []
        super().__init__(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        url = f'{request.url.scheme}://{request.url.host}{request.url.path}'
        self.requested.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text='not found')
        if isinstance(route, httpx.RequestError):
            raise type(route)(str(route), request=request)
        if isinstance(route, Exception):
            raise route
        status, body = route
        return httpx.Response(status, text=body, headers={'Content-Type': 'text/html'})


@asynccontextmanager
async def dripping_server(body: bytes, interval: float) -> AsyncIterator[str]:
    """Local HTTP server that sends ``body`` one byte every ``interval`` seconds; yields its base url."""
    handlers: list[asyncio.Task] = []

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        handlers.append(asyncio.current_task())
        try:
            await reader.readuntil(b'\r\n\r\n')
            writer.write(
                b'HTTP/1.1 200 OK\r\nContent-Type: text/html\r\n'
                + f'Content-Length: {len(body)}\r\n\r\n'.encode()
            )
            for index in range(len(body)):
                await writer.drain()
                await asyncio.sleep(interval)
                writer.write(body[index:index + 1])
            await writer.drain()
        except (asyncio.IncompleteReadError, ConnectionError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(handle, '127.0.0.1', 0)
    port = server.sockets[0].getsockname()[1]
    try:
        yield f'http://127.0.0.1:{port}'
    finally:
        for task in handlers:
            task.cancel()
        await asyncio.gather(*handlers, return_exceptions=True)
        server.close()
        await server.wait_closed()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        search_url=SEARCH_URL,
        page_delay_seconds=0.0,
        crawl_delay_seconds=0.0,
        domain_budget=0,
        enable_api_discovery=False,
        enable_web_crawling=False,
    )


@pytest.fixture
def make_client() -> Callable[[dict[str, Route]], tuple[httpx.AsyncClient, RecordingTransport]]:
    def factory(routes: dict[str, Route]) -> tuple[httpx.AsyncClient, RecordingTransport]:
        transport = RecordingTransport(routes)
        return httpx.AsyncClient(transport=transport), transport

    return factory
