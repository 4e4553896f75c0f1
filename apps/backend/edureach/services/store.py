"""
Engagement store: the persistence boundary of the lead engine.

Services depend on the abstract `EngagementStore` and receive a concrete
store from their caller. `SqlEngagementStore` is the SQLAlchemy-backed
implementation used by the API and the CLI; every mutation is one commit.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from loguru import logger
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import LeadConflictError, LeadNotFoundError
from ..models.conversation import Conversation
from ..models.db import utcnow
from ..models.interaction import Interaction
from ..models.lead import Lead
from ..models.message import Message
from ..schemas import ChatMessage, ConversationRecord, InteractionRecord, LeadRecord

LeadId = Union[UUID, str]


def _uuid(value: LeadId) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return None


class EngagementStore(ABC):
    @abstractmethod
    def find_lead_by_email(self, email: str) -> Optional[LeadRecord]:
        """Lead with this (already normalized) email, or None"""

    @abstractmethod
    def get_lead(self, lead_id: LeadId) -> Optional[LeadRecord]:
        pass

    @abstractmethod
    def create_lead(self, fields: Dict[str, Any]) -> LeadRecord:
        """Insert a lead. Raises LeadConflictError on a duplicate email."""

    @abstractmethod
    def update_lead(self, lead_id: LeadId, fields: Dict[str, Any]) -> LeadRecord:
        """Apply field updates atomically. Raises LeadNotFoundError."""

    @abstractmethod
    def find_interactions(self, lead_id: LeadId, limit: int = 10) -> List[InteractionRecord]:
        """Most recent interactions first"""

    @abstractmethod
    def find_conversations(self, lead_id: LeadId) -> List[ConversationRecord]:
        """Most recently updated conversations first"""

    @abstractmethod
    def list_all_lead_ids(self) -> List[UUID]:
        pass

    @abstractmethod
    def list_leads(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[LeadRecord], int]:
        """Page of leads, newest first, with the total matching count"""

    @abstractmethod
    def add_interaction(
        self,
        lead_id: LeadId,
        type: str,
        content: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> InteractionRecord:
        pass

    @abstractmethod
    def create_conversation(self, lead_id: LeadId, messages: Iterable[ChatMessage]) -> ConversationRecord:
        pass

    @abstractmethod
    def append_messages(self, conversation_id: LeadId, messages: Iterable[ChatMessage]) -> ConversationRecord:
        pass

    @abstractmethod
    def latest_conversation_for_email(self, email: str) -> Optional[ConversationRecord]:
        pass


class SqlEngagementStore(EngagementStore):
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, email: Optional[str] = None) -> None:
        # a failed flush leaves the session unusable until rolled back
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            if email is None:
                raise
            logger.warning("Duplicate lead email: {}", email)
            raise LeadConflictError(email)
        except SQLAlchemyError:
            self.db.rollback()
            raise

    def _lead_row(self, lead_id: LeadId) -> Lead:
        key = _uuid(lead_id)
        lead = self.db.get(Lead, key) if key else None
        if not lead:
            raise LeadNotFoundError(lead_id)
        return lead

    def find_lead_by_email(self, email: str) -> Optional[LeadRecord]:
        lead = self.db.query(Lead).filter(Lead.email == email).first()
        return LeadRecord.model_validate(lead) if lead else None

    def get_lead(self, lead_id: LeadId) -> Optional[LeadRecord]:
        key = _uuid(lead_id)
        lead = self.db.get(Lead, key) if key else None
        return LeadRecord.model_validate(lead) if lead else None

    def create_lead(self, fields: Dict[str, Any]) -> LeadRecord:
        lead = Lead(**fields)
        self.db.add(lead)
        self._commit(email=fields.get("email", ""))
        self.db.refresh(lead)
        return LeadRecord.model_validate(lead)

    def update_lead(self, lead_id: LeadId, fields: Dict[str, Any]) -> LeadRecord:
        lead = self._lead_row(lead_id)
        for key, value in fields.items():
            setattr(lead, key, value)
        lead.updated_at = utcnow()
        self._commit(email=fields.get("email", lead.email))
        self.db.refresh(lead)
        return LeadRecord.model_validate(lead)

    def find_interactions(self, lead_id: LeadId, limit: int = 10) -> List[InteractionRecord]:
        rows = (
            self.db.query(Interaction)
            .filter(Interaction.lead_id == _uuid(lead_id))
            .order_by(Interaction.created_at.desc())
            .limit(limit)
            .all()
        )
        return [InteractionRecord.model_validate(row) for row in rows]

    def find_conversations(self, lead_id: LeadId) -> List[ConversationRecord]:
        rows = (
            self.db.query(Conversation)
            .filter(Conversation.lead_id == _uuid(lead_id))
            .order_by(Conversation.updated_at.desc())
            .all()
        )
        return [ConversationRecord.model_validate(row) for row in rows]

    def list_all_lead_ids(self) -> List[UUID]:
        return [row.id for row in self.db.query(Lead.id).order_by(Lead.created_at).all()]

    def list_leads(
        self,
        status: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[LeadRecord], int]:
        query = self.db.query(Lead)
        if status:
            query = query.filter(Lead.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    Lead.name.ilike(pattern),
                    Lead.email.ilike(pattern),
                    Lead.phone.like(pattern),
                    Lead.role.ilike(pattern),
                )
            )
        total = query.count()
        rows = query.order_by(Lead.created_at.desc()).offset(offset).limit(limit).all()
        return [LeadRecord.model_validate(row) for row in rows], total

    def add_interaction(
        self,
        lead_id: LeadId,
        type: str,
        content: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> InteractionRecord:
        lead = self._lead_row(lead_id)
        interaction = Interaction(lead_id=lead.id, type=type, content=content, meta=metadata)
        self.db.add(interaction)
        self._commit()
        self.db.refresh(interaction)
        return InteractionRecord.model_validate(interaction)

    def _append(self, conversation: Conversation, messages: Iterable[ChatMessage]) -> None:
        position = len(conversation.messages)
        for msg in messages:
            conversation.messages.append(Message(position=position, role=msg.role, content=msg.content))
            position += 1
        conversation.updated_at = utcnow()

    def create_conversation(self, lead_id: LeadId, messages: Iterable[ChatMessage]) -> ConversationRecord:
        lead = self._lead_row(lead_id)
        conversation = Conversation(lead_id=lead.id)
        self.db.add(conversation)
        self._append(conversation, messages)
        self._commit()
        self.db.refresh(conversation)
        return ConversationRecord.model_validate(conversation)

    def append_messages(self, conversation_id: LeadId, messages: Iterable[ChatMessage]) -> ConversationRecord:
        key = _uuid(conversation_id)
        conversation = self.db.get(Conversation, key) if key else None
        if not conversation:
            raise LeadNotFoundError(conversation_id, kind="Conversation")
        self._append(conversation, messages)
        self._commit()
        self.db.refresh(conversation)
        return ConversationRecord.model_validate(conversation)

    def latest_conversation_for_email(self, email: str) -> Optional[ConversationRecord]:
        conversation = (
            self.db.query(Conversation)
            .join(Lead, Conversation.lead_id == Lead.id)
            .filter(Lead.email == email)
            .order_by(Conversation.created_at.desc())
            .first()
        )
        return ConversationRecord.model_validate(conversation) if conversation else None
