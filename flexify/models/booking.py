"""Booking model definitions."""

from enum import Enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from flexify.database import Base


class BookingStatus(str, Enum):
    BOOKED = "booked"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(Base):
    """A member's reservation of one trainer slot.

    Rows are never deleted; cancelling only moves the status.
    """
    __tablename__ = "bookings"
    __table_args__ = (
        # At most one active booking per trainer slot, enforced by the database.
        Index(
            "uq_bookings_active_slot",
            "trainer_id",
            "date",
            "slot_start",
            "slot_end",
            unique=True,
            sqlite_where=text("status = 'booked'"),
            postgresql_where=text("status = 'booked'"),
        ),
        Index("idx_bookings_member_date", "member_id", "date"),
    )

    id = Column(Integer, primary_key=True)
    member_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    trainer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False)
    slot_start = Column(String(5), nullable=False)
    slot_end = Column(String(5), nullable=False)
    status = Column(String, nullable=False, default=BookingStatus.BOOKED.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    member = relationship("User", foreign_keys=[member_id], lazy="joined", innerjoin=True)
    trainer = relationship("User", foreign_keys=[trainer_id], lazy="joined", innerjoin=True)

    @property
    def slot(self) -> dict:
        return {"start": self.slot_start, "end": self.slot_end}
