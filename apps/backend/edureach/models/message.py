from sqlalchemy import Column, Integer, Text, String, TIMESTAMP, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid
from .db import Base, utcnow

class Message(Base):
    __tablename__ = "messages"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False)  # order within the conversation
    role = Column(String, nullable=False)  # 'user' | 'assistant' | 'system'
    content = Column(Text, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), default=utcnow)

    conversation = relationship("Conversation", back_populates="messages")
