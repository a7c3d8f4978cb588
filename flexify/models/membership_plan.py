"""Membership plan model definitions."""

from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from flexify.database import Base


class MembershipPlan(Base):
    __tablename__ = "membership_plans"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False)
    duration_in_months = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
