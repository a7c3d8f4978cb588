"""Attendance model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.orm import relationship

from flexify.database import Base


class Attendance(Base):
    """Represents one gym check-in. A user checks in at most once per day."""
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_attendance_user_date"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    check_in_time = Column(DateTime, nullable=False)
    date = Column(Date, nullable=False)

    user = relationship("User", lazy="joined", innerjoin=True)
