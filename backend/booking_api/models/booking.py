"""
Booking model and its association with bookables.

Key design decisions:
- booker_id is the caller's user id; it is never supplied by the client
- accepted defaults to false until an administrator approves the booking
- bookable_bookings rows are written together with their booking and never
  changed afterwards, so a booking's item set is fixed at creation
"""

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    false,
)

from booking_api.db.base import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    booker_id = Column(String(255), nullable=False, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    accepted = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        CheckConstraint("end_time > start_time", name="check_booking_time_range"),
        Index("ix_bookings_title_id", "title", "id"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, title={self.title}, booker={self.booker_id}, accepted={self.accepted})>"


bookable_bookings = Table(
    "bookable_bookings",
    Base.metadata,
    Column("bookable_id", Integer, ForeignKey("bookables.id"), primary_key=True),
    Column("booking_id", Integer, ForeignKey("bookings.id", ondelete="CASCADE"), primary_key=True),
    Index("ix_bookable_bookings_booking_id", "booking_id"),
)
