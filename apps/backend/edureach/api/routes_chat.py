from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from ..schemas import ChatMessage
from ..services.openai_service import ChatService, save_exchange
from ..services.store import SqlEngagementStore
from .dependencies import get_chat_service, get_store

router = APIRouter(prefix="/api/v1/ai", tags=["chat"])

class ChatReq(BaseModel):
    messages: List[ChatMessage] = Field(..., min_length=1)
    lead_id: Optional[UUID] = None
    conversation_id: Optional[UUID] = None

@router.post("/chat")
async def chat(
    req: ChatReq,
    chat_service: ChatService = Depends(get_chat_service),
    store: SqlEngagementStore = Depends(get_store),
):
    reply = await chat_service.complete_chat(req.messages)
    assistant = ChatMessage(role="assistant", content=reply)

    # an existing conversation only needs the new round
    new_messages = [req.messages[-1], assistant] if req.conversation_id else [*req.messages, assistant]
    conversation = await run_in_threadpool(save_exchange, store, req.lead_id, req.conversation_id, new_messages)

    return {
        "content": reply,
        "conversation_id": str(conversation.id) if conversation else None,
    }

@router.get("/conversation")
def latest_conversation(
    email: str = Query(..., min_length=3),
    store: SqlEngagementStore = Depends(get_store),
):
    conversation = store.latest_conversation_for_email(email.strip().lower())
    if not conversation:
        return {"messages": []}
    return {
        "conversation_id": str(conversation.id),
        "messages": [m.model_dump() for m in conversation.messages],
    }
