"""
Progress events for scrape runs.

The orchestrator only talks to a :class:`ScrapeObserver`. Observers decide
where events go: the log, or the per-job broker behind the SSE endpoint.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import defaultdict, deque
from typing import Any, AsyncIterator

from leadpoacher.logging_utils import log_event
from leadpoacher.models import ProgressEvent, ProgressEventType, ProgressPhase

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 200
HISTORY_TTL_SECONDS = 300.0


def is_final(event: ProgressEvent) -> bool:
    """A job is over on its complete event, or on an error raised in the complete phase."""
    if event.type == ProgressEventType.COMPLETE:
        return True
    return event.type == ProgressEventType.ERROR and event.phase == ProgressPhase.COMPLETE


class ScrapeObserver:
    """Event sink handed to the orchestrator; the base class drops everything."""

    async def emit(
        self,
        phase: ProgressPhase,
        operation: str,
        progress: float,
        *,
        event_type: ProgressEventType = ProgressEventType.PROGRESS,
        errors: list[str] | None = None,
        **details: Any,
    ) -> None:
        return None


class LoggingObserver(ScrapeObserver):
    def __init__(self, scope: str = 'scraper') -> None:
        self.scope = scope

    async def emit(
        self,
        phase: ProgressPhase,
        operation: str,
        progress: float,
        *,
        event_type: ProgressEventType = ProgressEventType.PROGRESS,
        errors: list[str] | None = None,
        **details: Any,
    ) -> None:
        level = logging.WARNING if event_type in (ProgressEventType.ERROR, ProgressEventType.WARNING) else logging.INFO
        log_event(
            logger,
            level,
            f'{self.scope}_{operation}',
            phase=phase.value,
            progress=round(progress, 3),
            errors=errors,
            **details,
        )


class ProgressBroker:
    """
    In-memory fan-out of progress events per job, with a short replay history.

    A job's history is dropped ``history_ttl_seconds`` after its final event,
    once nobody is subscribed to it.
    """

    def __init__(self, history_limit: int = HISTORY_LIMIT, history_ttl_seconds: float = HISTORY_TTL_SECONDS) -> None:
        self.history_ttl_seconds = history_ttl_seconds
        self._history: dict[str, deque[ProgressEvent]] = defaultdict(lambda: deque(maxlen=history_limit))
        self._subscribers: dict[str, list[asyncio.Queue[ProgressEvent]]] = defaultdict(list)
        self._finished_at: dict[str, float] = {}
        self._lock = asyncio.Lock()

    async def publish(self, event: ProgressEvent) -> None:
        async with self._lock:
            self._prune(exclude=event.job_id)
            self._history[event.job_id].append(event)
            if is_final(event):
                self._finished_at[event.job_id] = time.monotonic()
            subscribers = list(self._subscribers.get(event.job_id, []))
        for queue in subscribers:
            queue.put_nowait(event)

    async def subscribe(self, job_id: str) -> asyncio.Queue[ProgressEvent]:
        queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()
        async with self._lock:
            self._prune(exclude=job_id)
            for event in self._history.get(job_id, ()):
                queue.put_nowait(event)
            self._subscribers[job_id].append(queue)
        return queue

    async def unsubscribe(self, job_id: str, queue: asyncio.Queue[ProgressEvent]) -> None:
        async with self._lock:
            subscribers = self._subscribers.get(job_id, [])
            if queue in subscribers:
                subscribers.remove(queue)
            if not subscribers:
                self._subscribers.pop(job_id, None)

    async def history(self, job_id: str) -> list[ProgressEvent]:
        async with self._lock:
            return list(self._history.get(job_id, ()))

    async def stream(self, job_id: str) -> AsyncIterator[ProgressEvent]:
        """Yield events for ``job_id`` until the job's final event arrives."""
        queue = await self.subscribe(job_id)
        try:
            while True:
                event = await queue.get()
                yield event
                if is_final(event):
                    return
        finally:
            await self.unsubscribe(job_id, queue)

    def _prune(self, exclude: str) -> None:
        # caller holds the lock
        cutoff = time.monotonic() - self.history_ttl_seconds
        expired = [
            job_id
            for job_id, finished in self._finished_at.items()
            if finished <= cutoff and job_id != exclude and not self._subscribers.get(job_id)
        ]
        for job_id in expired:
            self._finished_at.pop(job_id, None)
            self._history.pop(job_id, None)
            self._subscribers.pop(job_id, None)
        if expired:
            log_event(logger, logging.DEBUG, 'progress_history_pruned', jobs=len(expired))


class JobProgressReporter(LoggingObserver):
    """Logs every event and publishes it to the broker under one job id."""

    def __init__(self, broker: ProgressBroker, job_id: str) -> None:
        super().__init__(scope='job')
        self.broker = broker
        self.job_id = job_id

    async def emit(
        self,
        phase: ProgressPhase,
        operation: str,
        progress: float,
        *,
        event_type: ProgressEventType = ProgressEventType.PROGRESS,
        errors: list[str] | None = None,
        **details: Any,
    ) -> None:
        await super().emit(phase, operation, progress, event_type=event_type, errors=errors, **details)
        await self.broker.publish(
            ProgressEvent(
                job_id=self.job_id,
                type=event_type,
                phase=phase,
                operation=operation,
                progress=min(max(progress, 0.0), 1.0),
                details=details,
                errors=errors,
            )
        )


def format_sse(event: ProgressEvent) -> str:
    return f'data: {event.model_dump_json()}\n\n'
