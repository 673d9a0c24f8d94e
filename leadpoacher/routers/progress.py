from __future__ import annotations

from typing import AsyncIterator

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from leadpoacher.dependencies import get_progress_broker
from leadpoacher.models import ProgressEvent, ProgressPhase
from leadpoacher.services.progress import ProgressBroker, format_sse

router = APIRouter()


async def _event_stream(broker: ProgressBroker, job_id: str) -> AsyncIterator[str]:
    connected = ProgressEvent(
        job_id=job_id,
        phase=ProgressPhase.INIT,
        operation='connection_established',
        details={'connected': True},
    )
    yield format_sse(connected)
    async for event in broker.stream(job_id):
        yield format_sse(event)


@router.get('/progress/{job_id}')
async def stream_progress(job_id: str, broker: ProgressBroker = Depends(get_progress_broker)) -> StreamingResponse:
    return StreamingResponse(
        _event_stream(broker, job_id),
        media_type='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'Connection': 'keep-alive'},
    )
