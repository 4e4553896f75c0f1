from sqlalchemy import Column, String, Text, TIMESTAMP, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid
from .db import Base, utcnow

class Interaction(Base):
    __tablename__ = "interactions"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_id = Column(Uuid, ForeignKey("leads.id", ondelete="CASCADE"), index=True, nullable=False)
    type = Column(String, nullable=False)  # 'email_attempt'|'email_sent'|'payment_verified'|...
    content = Column(Text)
    meta = Column("metadata", JSON)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, index=True, nullable=False)

    lead = relationship("Lead", back_populates="interactions")
