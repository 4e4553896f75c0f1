from math import ceil
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ..schemas import LeadForm, LeadStatus
from ..services.lead_service import LeadService
from ..services.store import SqlEngagementStore
from .dependencies import get_lead_service, get_store

router = APIRouter(prefix="/api/v1/leads", tags=["leads"])


@router.post("")
async def submit_lead(form: LeadForm, service: LeadService = Depends(get_lead_service)):
    lead, created = await service.upsert(form)
    return JSONResponse(
        status_code=201 if created else 200,
        content=lead.model_dump(mode="json"),
    )


@router.get("")
def list_leads(
    status: Optional[LeadStatus] = None,
    search: Optional[str] = None,
    limit: int = Query(50, ge=1, le=200),
    page: int = Query(1, ge=1),
    store: SqlEngagementStore = Depends(get_store),
):
    leads, total = store.list_leads(
        status=status.value if status else None,
        search=search,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return {
        "data": [lead.model_dump(mode="json") for lead in leads],
        "meta": {
            "total": total,
            "page": page,
            "totalPages": ceil(total / limit),
            "limit": limit,
        },
    }


@router.post("/rescore")
def rescore_all(service: LeadService = Depends(get_lead_service)):
    return service.rescore_all()


@router.post("/{lead_id}/score")
def recompute_score(lead_id: UUID, service: LeadService = Depends(get_lead_service)):
    score = service.recompute_score(lead_id)
    lead = service.store.get_lead(lead_id)
    return {"lead_id": str(lead_id), "score": score, "status": lead.status.value}
