from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse

from leadpoacher.dependencies import get_lead_store
from leadpoacher.jobs.lead_store import LeadNotFoundError, LeadStore
from leadpoacher.models import Company, Lead, LeadUpdateRequest, LeadWithCompany

router = APIRouter()


@router.get('/companies', response_model=list[Company])
async def list_companies(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: LeadStore = Depends(get_lead_store),
) -> list[Company]:
    return await store.list_companies(limit=limit, offset=offset)


@router.get('/leads', response_model=list[LeadWithCompany])
async def list_leads(
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: LeadStore = Depends(get_lead_store),
) -> list[LeadWithCompany]:
    return await store.list_leads(limit=limit, offset=offset)


@router.get('/leads/export')
async def export_leads(store: LeadStore = Depends(get_lead_store)) -> StreamingResponse:
    csv_bytes = await store.to_csv_bytes()
    return StreamingResponse(
        iter([csv_bytes]),
        media_type='text/csv',
        headers={'Content-Disposition': 'attachment; filename=leads.csv'},
    )


@router.patch('/leads/{lead_id}', response_model=Lead)
async def update_lead(
    lead_id: str,
    payload: LeadUpdateRequest,
    store: LeadStore = Depends(get_lead_store),
) -> Lead:
    try:
        return await store.update_lead(lead_id, status=payload.status, note=payload.note)
    except LeadNotFoundError as exc:
        raise HTTPException(status_code=404, detail='Lead not found') from exc
