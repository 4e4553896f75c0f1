from sqlalchemy import Column, String, Integer, Text, TIMESTAMP, JSON, ForeignKey, Uuid
from sqlalchemy.orm import relationship
import uuid
from .db import Base, utcnow

class Lead(Base):
    __tablename__ = "leads"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)  # lowercased + trimmed
    phone = Column(String)

    # profile
    role = Column(String)
    experience = Column(String)
    goals = Column(Text)
    interests = Column(JSON, default=list)
    learning_style = Column(String)
    budget = Column(String)
    international = Column(String)
    preferred_contact = Column(String, default="email")  # 'email'|'phone'|'whatsapp'

    # marketing
    hear_about_us = Column(String)
    plan_interest = Column(String)
    quiz_answers = Column(JSON)

    ai_score = Column(Integer)
    status = Column(String, default="new", index=True)  # 'new'|'contacted'|'qualified'|'converted'|'lost'
    source = Column(String, default="website")

    # payment
    payment_status = Column(String)  # 'pending'|'completed'|'failed'|'refunded'
    payment_id = Column(String)
    order_id = Column(String)
    amount = Column(Integer)
    currency = Column(String, default="INR")

    membership_plan_id = Column(Uuid, ForeignKey("membership_plans.id"), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(TIMESTAMP(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    membership_plan = relationship("MembershipPlan", back_populates="leads")
    interactions = relationship("Interaction", back_populates="lead", cascade="all, delete-orphan")
    conversations = relationship("Conversation", back_populates="lead", cascade="all, delete-orphan")
