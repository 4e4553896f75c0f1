from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ..models.db import get_db
from ..services.email_service import EmailNotifier
from ..services.lead_service import LeadService
from ..services.openai_service import ChatService
from ..services.store import SqlEngagementStore
from ..services.tasks import TaskDispatcher

# Process-wide: background notification tasks outlive the request
_dispatcher = TaskDispatcher()


def get_dispatcher() -> TaskDispatcher:
    return _dispatcher


def get_store(db: Session = Depends(get_db)) -> SqlEngagementStore:
    return SqlEngagementStore(db)


def get_notifier() -> EmailNotifier:
    return EmailNotifier()


def get_lead_service(
    store: SqlEngagementStore = Depends(get_store),
    notifier: EmailNotifier = Depends(get_notifier),
    dispatcher: TaskDispatcher = Depends(get_dispatcher),
) -> LeadService:
    return LeadService(store, notifier, dispatcher)


@lru_cache
def get_chat_service() -> ChatService:
    return ChatService()
