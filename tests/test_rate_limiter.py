from __future__ import annotations

import pytest

from leadpoacher.services import rate_limiter
from leadpoacher.services.rate_limiter import HostRateLimiter


@pytest.fixture
def recorded_sleeps(monkeypatch) -> list[float]:
    sleeps: list[float] = []

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    monkeypatch.setattr(rate_limiter.asyncio, 'sleep', fake_sleep)
    return sleeps


@pytest.mark.asyncio
async def test_second_request_to_same_host_waits(recorded_sleeps) -> None:
    limiter = HostRateLimiter(5.0)

    await limiter.wait('https://alpha.de/a')
    await limiter.wait('https://alpha.de/b')

    assert len(recorded_sleeps) == 1
    assert 4.0 < recorded_sleeps[0] <= 5.0


@pytest.mark.asyncio
async def test_different_hosts_do_not_wait(recorded_sleeps) -> None:
    limiter = HostRateLimiter(5.0)

    await limiter.wait('https://alpha.de/')
    await limiter.wait('https://beta.de/')

    assert recorded_sleeps == []


@pytest.mark.asyncio
async def test_crawl_delay_raises_interval(recorded_sleeps) -> None:
    limiter = HostRateLimiter(0.0)

    await limiter.wait('https://alpha.de/', crawl_delay_seconds=10.0)
    await limiter.wait('https://alpha.de/', crawl_delay_seconds=10.0)

    assert len(recorded_sleeps) == 1
    assert recorded_sleeps[0] > 9.0
