"""
Bookable listings, optionally filtered by type.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_api.core.metrics import record_db_operation
from booking_api.models.bookable import Bookable, BookableType


async def list_bookables(
    db: AsyncSession,
    page: int = 0,
    max_items: int = 20,
    bookable_type: Optional[BookableType] = None,
) -> list[Bookable]:
    """
    Page through bookables ordered by (title, id).
    Uses ix_bookables_type_title_id when a type filter is given.
    """
    query = select(Bookable)
    if bookable_type is not None:
        query = query.where(Bookable.bookable_type == BookableType(bookable_type).value)

    query = (
        query
        .order_by(Bookable.title, Bookable.id)
        .offset(page * max_items)
        .limit(max_items)
    )
    result = await db.execute(query)
    record_db_operation("read")
    return list(result.scalars().all())
