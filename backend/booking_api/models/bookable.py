"""
Bookable model: a reservable facility ("lokal") or inventory item ("inventarie").

Bookables are managed outside this service; the API only reads them.
"""

import enum

from sqlalchemy import Column, Integer, String, Index, CheckConstraint

from booking_api.db.base import Base


class BookableType(str, enum.Enum):
    FACILITY = "lokal"
    INVENTORY = "inventarie"


class Bookable(Base):
    __tablename__ = "bookables"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=False, default="", server_default="")
    bookable_type = Column(String(20), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "bookable_type IN ('lokal', 'inventarie')",
            name="check_bookable_type",
        ),
        # Covers the type-filtered listing ordered by (title, id)
        Index("ix_bookables_type_title_id", "bookable_type", "title", "id"),
    )

    def __repr__(self) -> str:
        return f"<Bookable(id={self.id}, title={self.title}, type={self.bookable_type})>"
