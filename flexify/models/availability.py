"""Trainer availability model definitions."""

from sqlalchemy import JSON, Column, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from flexify.database import Base


class TrainerAvailability(Base):
    """Slots a trainer has opened for booking on one calendar day."""
    __tablename__ = "trainer_availability"
    __table_args__ = (
        UniqueConstraint("trainer_id", "date", name="uq_trainer_availability_trainer_date"),
    )

    id = Column(Integer, primary_key=True)
    trainer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    # Ordered list of {"start": "HH:MM", "end": "HH:MM"}
    slots = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    trainer = relationship("User", lazy="joined", innerjoin=True)
