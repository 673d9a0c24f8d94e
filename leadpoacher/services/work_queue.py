from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, Iterable, TypeVar

T = TypeVar('T')


class PageWorkQueue(Generic[T]):
    """
    Feeds items to ``concurrency`` workers, pausing ``delay_seconds`` after each
    item while more work is queued. With one worker items run in order.
    """

    def __init__(self, concurrency: int = 1, delay_seconds: float = 1.0) -> None:
        self.concurrency = max(concurrency, 1)
        self.delay_seconds = max(delay_seconds, 0.0)

    async def run(self, items: Iterable[T], handler: Callable[[T], Awaitable[None]]) -> None:
        queue: asyncio.Queue[T] = asyncio.Queue()
        for item in items:
            queue.put_nowait(item)
        if queue.empty():
            return

        workers = [asyncio.create_task(self._worker(queue, handler)) for _ in range(self.concurrency)]
        try:
            await asyncio.gather(*workers)
        except BaseException:
            for worker in workers:
                worker.cancel()
            raise

    async def _worker(self, queue: asyncio.Queue[T], handler: Callable[[T], Awaitable[None]]) -> None:
        while True:
            try:
                item = queue.get_nowait()
            except asyncio.QueueEmpty:
                return
            try:
                await handler(item)
            finally:
                queue.task_done()
            if self.delay_seconds and not queue.empty():
                await asyncio.sleep(self.delay_seconds)
