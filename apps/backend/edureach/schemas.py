from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LeadStatus(str, Enum):
    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    CONVERTED = "converted"
    LOST = "lost"


class LeadForm(BaseModel):
    """
    Lead capture form payload.

    Accepts the camelCase keys sent by the website form. Which keys were
    actually sent matters: `model_fields_set` drives the merge on update.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    experience: Optional[str] = None
    goals: Optional[str] = None
    interests: Optional[List[str]] = None
    learning_style: Optional[str] = None
    budget: Optional[str] = None
    international: Optional[str] = None
    preferred_contact: Optional[Literal["email", "phone", "whatsapp"]] = None
    hear_about_us: Optional[str] = None
    plan_interest: Optional[str] = None
    quiz_answers: Optional[Dict[str, Any]] = None
    payment_status: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    membership_plan_id: Optional[UUID] = None


class LeadRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    phone: Optional[str] = None
    role: Optional[str] = None
    experience: Optional[str] = None
    goals: Optional[str] = None
    interests: List[str] = Field(default_factory=list)
    learning_style: Optional[str] = None
    budget: Optional[str] = None
    international: Optional[str] = None
    preferred_contact: Optional[str] = None
    hear_about_us: Optional[str] = None
    plan_interest: Optional[str] = None
    quiz_answers: Optional[Dict[str, Any]] = None
    ai_score: Optional[int] = None
    status: LeadStatus = LeadStatus.NEW
    source: Optional[str] = None
    payment_status: Optional[str] = None
    payment_id: Optional[str] = None
    order_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    membership_plan_id: Optional[UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class InteractionRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    type: str
    content: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(default=None, validation_alias=AliasChoices("meta", "metadata"))
    created_at: datetime


class ChatMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: Literal["user", "assistant", "system"]
    content: str


class ConversationRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[UUID] = None
    lead_id: Optional[UUID] = None
    messages: List[ChatMessage] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
