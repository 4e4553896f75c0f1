from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr
from starlette.concurrency import run_in_threadpool

from ..services.email_service import EmailTemplate, PaymentDetails, send_template_email
from ..services.store import SqlEngagementStore
from .dependencies import get_store

router = APIRouter(prefix="/api/v1/send-email", tags=["email"])


class SendEmailReq(BaseModel):
    to: EmailStr
    template: EmailTemplate
    lead_id: Optional[UUID] = None
    payment_details: Optional[PaymentDetails] = None
    metadata: Optional[Dict[str, Any]] = None


@router.post("")
async def send_email(req: SendEmailReq, store: SqlEngagementStore = Depends(get_store)):
    lead = await run_in_threadpool(store.get_lead, req.lead_id) if req.lead_id else None
    result = await send_template_email(
        store,
        str(req.to),
        req.template,
        lead=lead,
        payment=req.payment_details,
        metadata=req.metadata,
    )
    if not result.success:
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Failed to send email",
                "message": result.error,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )
    return {"success": True, "message": f"Email sent successfully to {req.to}"}
