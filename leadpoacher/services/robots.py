from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import urlparse
from urllib.robotparser import RobotFileParser

import httpx

from leadpoacher.logging_utils import log_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RobotsVerdict:
    allowed: bool
    crawl_delay: float | None = None


class RobotsCache:
    """
    robots.txt rules for one crawl, fetched once per origin.

    Origins whose robots.txt is missing or unreachable get ``allow_when_unreachable``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout_seconds: float = 10.0,
        allow_when_unreachable: bool = True,
    ) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds
        self.allow_when_unreachable = allow_when_unreachable
        self._rules: dict[str, RobotFileParser | None] = {}
        self._lock = asyncio.Lock()

    async def lookup(self, url: str, user_agent: str) -> RobotsVerdict:
        parsed = urlparse(url)
        origin = f'{parsed.scheme or "https"}://{parsed.netloc}'

        async with self._lock:
            if origin not in self._rules:
                self._rules[origin] = await self._load(origin)
            rules = self._rules[origin]

        if rules is None:
            return RobotsVerdict(allowed=self.allow_when_unreachable)

        delay = rules.crawl_delay(user_agent)
        return RobotsVerdict(
            allowed=rules.can_fetch(user_agent, url),
            crawl_delay=float(delay) if delay is not None else None,
        )

    async def _load(self, origin: str) -> RobotFileParser | None:
        robots_url = f'{origin}/robots.txt'
        try:
            response = await asyncio.wait_for(
                self.client.get(robots_url, timeout=self.timeout_seconds, follow_redirects=True),
                self.timeout_seconds,
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as exc:
            log_event(logger, logging.WARNING, 'robots_fetch_failed', origin=origin, error=str(exc) or 'timeout')
            return None

        if response.status_code >= 400 or not response.text.strip():
            log_event(logger, logging.INFO, 'robots_unavailable', origin=origin, status_code=response.status_code)
            return None

        rules = RobotFileParser(robots_url)
        rules.parse(response.text.splitlines())
        log_event(logger, logging.DEBUG, 'robots_loaded', origin=origin)
        return rules
