from sqlalchemy import Column, String, Integer, Uuid
from sqlalchemy.orm import relationship
import uuid
from .db import Base

class MembershipPlan(Base):
    __tablename__ = "membership_plans"
    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    price_monthly = Column(Integer)
    price_annual = Column(Integer)
    currency = Column(String, default="INR")

    leads = relationship("Lead", back_populates="membership_plan")
