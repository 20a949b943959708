"""
Booking data access: listing, creation with item associations, acceptance.

ATOMIC CREATION
===============

A booking and its bookable_bookings rows are written in one transaction:

  1. INSERT INTO bookings ... RETURNING *
  2. INSERT INTO bookable_bookings (bookable_id, booking_id)
     VALUES (:b1, :id), (:b2, :id), ...        -- one multi-row statement

If step 2 is rejected (unknown bookable id), the transaction is rolled back
so the booking row from step 1 never becomes visible on its own.

Overlapping bookings for the same bookable are not detected here.
"""

from collections import defaultdict
from datetime import datetime
from typing import Iterable, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.exceptions import (
    InsertFailedError,
    ReferentialIntegrityError,
    UpdateFailedError,
)
from booking_api.core.logging import get_logger
from booking_api.core.metrics import record_booking_created, record_db_operation
from booking_api.models.bookable import Bookable
from booking_api.models.booking import Booking, bookable_bookings

logger = get_logger(__name__)


async def list_bookings(
    db: AsyncSession,
    page: int = 0,
    max_items: int = 20,
    accepted_only: bool = False,
) -> list[Booking]:
    """Page through bookings ordered by (title, id)."""
    query = select(Booking)
    if accepted_only:
        query = query.where(Booking.accepted.is_(True))

    query = (
        query
        .order_by(Booking.title, Booking.id)
        .offset(page * max_items)
        .limit(max_items)
    )
    result = await db.execute(query)
    record_db_operation("read")
    return list(result.scalars().all())


def build_association_insert(booking_id: int, item_ids: Sequence[int]):
    """Multi-row INSERT linking one booking to every bookable in `item_ids`."""
    return insert(bookable_bookings).values(
        [{"bookable_id": item_id, "booking_id": booking_id} for item_id in item_ids]
    )


async def add_booking(
    db: AsyncSession,
    title: str,
    booker_id: str,
    start_time: datetime,
    end_time: datetime,
    item_ids: Sequence[int],
) -> Booking:
    """
    Create a booking and link it to its items.
    Rolls back both inserts if either is rejected by the database.
    """
    try:
        result = await db.execute(
            insert(Booking)
            .values(
                title=title,
                booker_id=booker_id,
                start_time=start_time,
                end_time=end_time,
            )
            .returning(Booking)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise InsertFailedError("Insert failed")

        await db.execute(build_association_insert(booking.id, item_ids))
    except IntegrityError as e:
        await db.rollback()
        record_db_operation("rollback")
        logger.warning(
            "booking_insert_rejected",
            booker_id=booker_id,
            item_ids=list(item_ids),
            error=str(e.orig),
        )
        raise ReferentialIntegrityError(
            "Booking rejected by storage",
            detail=str(e.orig),
        ) from e

    record_db_operation("write")
    record_booking_created(len(item_ids))
    logger.info(
        "booking_created",
        booking_id=booking.id,
        booker_id=booker_id,
        items=len(item_ids),
    )
    return booking


async def set_accepted(db: AsyncSession, booking_id: int, accept: bool = True) -> Booking:
    """Set the acceptance flag. Raises UpdateFailedError for unknown ids."""
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id)
        .values(accepted=accept)
        .returning(Booking)
        .execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        logger.warning("booking_acceptance_failed", booking_id=booking_id, reason="not_found")
        raise UpdateFailedError("Update failed", booking_id=booking_id)

    record_db_operation("write")
    logger.info("booking_acceptance_changed", booking_id=booking_id, accepted=accept)
    return booking


async def fetch_bookings_for_bookables(
    db: AsyncSession,
    bookable_ids: Iterable[int],
) -> dict[int, list[Booking]]:
    """Bookings of every bookable in `bookable_ids`, keyed by bookable id."""
    ids = list(bookable_ids)
    grouped: dict[int, list[Booking]] = defaultdict(list)
    if not ids:
        return grouped

    result = await db.execute(
        select(bookable_bookings.c.bookable_id, Booking)
        .select_from(bookable_bookings)
        .join(Booking, Booking.id == bookable_bookings.c.booking_id)
        .where(bookable_bookings.c.bookable_id.in_(ids))
        .order_by(Booking.title, Booking.id)
    )
    record_db_operation("read")
    for bookable_id, booking in result.all():
        grouped[bookable_id].append(booking)
    return grouped


async def get_bookable_bookings(db: AsyncSession, bookable_id: int) -> list[Booking]:
    return (await fetch_bookings_for_bookables(db, [bookable_id])).get(bookable_id, [])


async def fetch_items_for_bookings(
    db: AsyncSession,
    booking_ids: Iterable[int],
) -> dict[int, list[Bookable]]:
    """Bookables linked to every booking in `booking_ids`, keyed by booking id."""
    ids = list(booking_ids)
    grouped: dict[int, list[Bookable]] = defaultdict(list)
    if not ids:
        return grouped

    result = await db.execute(
        select(bookable_bookings.c.booking_id, Bookable)
        .select_from(bookable_bookings)
        .join(Bookable, Bookable.id == bookable_bookings.c.bookable_id)
        .where(bookable_bookings.c.booking_id.in_(ids))
        .order_by(Bookable.title, Bookable.id)
    )
    record_db_operation("read")
    for booking_id, bookable in result.all():
        grouped[booking_id].append(bookable)
    return grouped


async def get_booking_items(db: AsyncSession, booking_id: int) -> list[Bookable]:
    return (await fetch_items_for_bookings(db, [booking_id])).get(booking_id, [])
