from __future__ import annotations

import asyncio
import time
from urllib.parse import urlparse


class HostRateLimiter:
    """Keeps a minimum interval between requests to the same host."""

    def __init__(self, min_interval_seconds: float) -> None:
        self.min_interval_seconds = max(min_interval_seconds, 0.0)
        self._lock = asyncio.Lock()
        self._last_called: dict[str, float] = {}

    async def wait(self, url: str, crawl_delay_seconds: float | None = None) -> None:
        host = urlparse(url).netloc.lower()
        min_interval = self.min_interval_seconds
        if crawl_delay_seconds is not None:
            min_interval = max(min_interval, crawl_delay_seconds)

        async with self._lock:
            now = time.monotonic()
            last = self._last_called.get(host)
            if last is not None:
                delta = now - last
                if delta < min_interval:
                    await asyncio.sleep(min_interval - delta)
            self._last_called[host] = time.monotonic()
