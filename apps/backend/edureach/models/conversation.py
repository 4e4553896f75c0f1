from sqlalchemy import Column, TIMESTAMP, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid
from .db import Base, utcnow

class Conversation(Base):
    __tablename__ = "conversations"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_id = Column(Uuid, ForeignKey("leads.id", ondelete="CASCADE"), index=True, nullable=False)

    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    lead = relationship("Lead", back_populates="conversations")
    messages = relationship(
        "Message",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="Message.position",
    )
