from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..config import settings
from ..services import payment_service
from ..services.lead_service import LeadService
from .dependencies import get_lead_service

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


class CreateOrderReq(BaseModel):
    amount: int = Field(..., gt=0)
    currency: str = settings.DEFAULT_CURRENCY
    receipt: Optional[str] = None
    notes: Optional[Dict[str, Any]] = None


class VerifyPaymentReq(BaseModel):
    razorpay_payment_id: str
    razorpay_order_id: str
    razorpay_signature: str
    lead_id: UUID
    amount: Optional[int] = None
    plan_name: Optional[str] = None


@router.post("/create-order")
def create_order(req: CreateOrderReq):
    return payment_service.create_order(req.amount, req.currency, req.receipt, req.notes)


@router.post("/verify")
async def verify_payment(req: VerifyPaymentReq, service: LeadService = Depends(get_lead_service)):
    payment_service.verify_signature(req.razorpay_order_id, req.razorpay_payment_id, req.razorpay_signature)
    lead = await service.record_payment(
        req.lead_id,
        payment_id=req.razorpay_payment_id,
        order_id=req.razorpay_order_id,
        amount=req.amount,
        plan_name=req.plan_name,
    )
    return {
        "success": True,
        "paymentId": req.razorpay_payment_id,
        "orderId": req.razorpay_order_id,
        "lead": lead.model_dump(mode="json"),
    }
