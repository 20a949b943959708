"""
Tests for the data-access functions, relation loaders and the operation
registry, without going through HTTP.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Result

from booking_api.core.config import get_settings
from booking_api.core.exceptions import (
    InsertFailedError,
    InvalidInputError,
    OperationNotFoundError,
    ReferentialIntegrityError,
    StorageError,
    UpdateFailedError,
)
from booking_api.models import BookableType, Booking
from booking_api.schemas.caller import CallerIdentity
from booking_api.services import bookable_service, booking_service
from booking_api.services.context import RequestContext
from booking_api.services.operations import OPERATIONS, dispatch

START = datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
END = datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc)


def test_association_insert_is_multi_row():
    stmt = booking_service.build_association_insert(7, [1, 2, 3])
    compiled = stmt.compile(dialect=postgresql.dialect())
    params = compiled.params

    assert str(compiled).startswith("INSERT INTO bookable_bookings")
    assert sorted(v for k, v in params.items() if k.startswith("bookable_id")) == [1, 2, 3]
    assert [v for k, v in params.items() if k.startswith("booking_id")] == [7, 7, 7]


def test_registry_declares_every_operation():
    assert set(OPERATIONS) == {
        "bookings",
        "activeBookings",
        "acceptedBookings",
        "facilities",
        "inventories",
        "bookables",
        "addBooking",
        "setAccepted",
    }
    assert OPERATIONS["addBooking"].writes
    assert OPERATIONS["setAccepted"].writes
    assert not OPERATIONS["bookings"].writes


@pytest.mark.asyncio
async def test_list_bookables_by_type(db_session, bookables):
    facilities = await bookable_service.list_bookables(db_session, bookable_type=BookableType.FACILITY)
    inventories = await bookable_service.list_bookables(db_session, bookable_type="inventarie")

    assert [b.title for b in facilities] == ["Aula", "Aula", "Bibliotek"]
    assert [b.title for b in inventories] == ["Kamera", "Projektor"]


@pytest.mark.asyncio
async def test_list_bookables_window(db_session, bookables):
    everything = await bookable_service.list_bookables(db_session, 0, 10)
    for page in range(3):
        window = await bookable_service.list_bookables(db_session, page, 2)
        assert [b.id for b in window] == [b.id for b in everything[page * 2:page * 2 + 2]]


@pytest.mark.asyncio
async def test_add_booking_and_fetch_items(db_session, bookables):
    booking = await booking_service.add_booking(
        db_session, "Möte", "user-1", START, END, [bookables[3].id, bookables[0].id]
    )
    await db_session.commit()

    items = await booking_service.get_booking_items(db_session, booking.id)
    assert {b.id for b in items} == {bookables[0].id, bookables[3].id}

    linked = await booking_service.get_bookable_bookings(db_session, bookables[0].id)
    assert [b.id for b in linked] == [booking.id]
    assert await booking_service.get_bookable_bookings(db_session, bookables[1].id) == []


@pytest.mark.asyncio
async def test_add_booking_rejected_item(db_session, bookables):
    with pytest.raises(ReferentialIntegrityError) as exc_info:
        await booking_service.add_booking(db_session, "Möte", "user-1", START, END, [12345])

    assert exc_info.value.code == "CONSTRAINT_VIOLATION"
    assert "detail" in exc_info.value.extensions
    assert await booking_service.list_bookings(db_session) == []


@pytest.mark.asyncio
async def test_set_accepted_unknown(db_session):
    with pytest.raises(UpdateFailedError):
        await booking_service.set_accepted(db_session, 999)


@pytest.mark.asyncio
async def test_fetch_items_batches_parents(db_session, bookables):
    first = await booking_service.add_booking(db_session, "A", "u", START, END, [bookables[0].id])
    second = await booking_service.add_booking(
        db_session, "B", "u", START, END, [bookables[1].id, bookables[2].id]
    )
    await db_session.commit()

    grouped = await booking_service.fetch_items_for_bookings(db_session, [first.id, second.id, 777])

    assert [b.id for b in grouped[first.id]] == [bookables[0].id]
    assert [b.title for b in grouped[second.id]] == ["Bibliotek", "Projektor"]
    assert 777 not in grouped


@pytest.mark.asyncio
async def test_relation_loader_single_batch(db_session, bookables):
    bookings = [
        await booking_service.add_booking(db_session, title, "u", START, END, [bookables[0].id])
        for title in ("A", "B", "C")
    ]
    await db_session.commit()

    ctx = RequestContext(db=db_session, settings=get_settings())
    ctx.prime_bookings(bookings)

    for booking in bookings:
        items = await ctx.items_loader.load(booking.id)
        assert [b.id for b in items] == [bookables[0].id]

    assert ctx.items_loader.batches == 1
    linked = await ctx.bookings_loader.load(bookables[0].id)
    assert sorted(b.id for b in linked) == sorted(b.id for b in bookings)


@pytest.mark.asyncio
async def test_dispatch_validates_and_authorizes(db_session, bookables):
    anonymous = RequestContext(db=db_session, settings=get_settings())
    member = RequestContext(
        db=db_session,
        settings=get_settings(),
        caller=CallerIdentity(userid="u1", permissions=["member"]),
    )

    with pytest.raises(OperationNotFoundError):
        await dispatch("deleteEverything", anonymous, {})
    with pytest.raises(InvalidInputError) as exc_info:
        await dispatch("bookables", anonymous, {"page": 0, "maxItems": -5})
    assert exc_info.value.extensions["errors"][0]["loc"] == ["maxItems"]

    booking = await dispatch(
        "addBooking",
        member,
        {"title": "Fika", "start_time": START, "end_time": END, "item_ids": [bookables[4].id]},
    )
    assert booking.booker_id == "u1"
    assert [b.id for b in await dispatch("bookings", anonymous, {})] == [booking.id]


@pytest.mark.asyncio
async def test_relation_loader_invalidate(db_session, bookables):
    first = await booking_service.add_booking(db_session, "A", "u", START, END, [bookables[0].id])
    await db_session.commit()

    ctx = RequestContext(db=db_session, settings=get_settings())
    assert [b.id for b in await ctx.bookings_loader.load(bookables[0].id)] == [first.id]

    second = await booking_service.add_booking(db_session, "B", "u", START, END, [bookables[0].id])
    await db_session.commit()
    assert [b.id for b in await ctx.bookings_loader.load(bookables[0].id)] == [first.id]

    ctx.invalidate_relations()
    linked = await ctx.bookings_loader.load(bookables[0].id)
    assert [b.id for b in linked] == [first.id, second.id]
    assert ctx.bookings_loader.batches == 2


@pytest.mark.asyncio
async def test_dispatch_storage_unavailable(unreachable_session):
    """Refused connections surface as STORAGE_ERROR for reads and writes."""
    member = RequestContext(
        db=unreachable_session,
        settings=get_settings(),
        caller=CallerIdentity(userid="u1", permissions=["member"]),
    )

    with pytest.raises(StorageError) as exc_info:
        await dispatch("bookings", member, {})
    assert exc_info.value.code == "STORAGE_ERROR"
    assert exc_info.value.extensions["detail"]

    with pytest.raises(StorageError):
        await dispatch(
            "addBooking",
            member,
            {"title": "Fika", "start_time": START, "end_time": END, "item_ids": [1]},
        )


@pytest.mark.asyncio
async def test_relation_loader_storage_unavailable(unreachable_session):
    ctx = RequestContext(db=unreachable_session, settings=get_settings())

    with pytest.raises(StorageError):
        await ctx.items_loader.load(1)


@pytest.mark.asyncio
async def test_add_booking_insert_returns_nothing(monkeypatch, db_session, bookables):
    """A booking insert that returns no row fails with INSERT_FAILED and leaves nothing behind."""
    member = RequestContext(
        db=db_session,
        settings=get_settings(),
        caller=CallerIdentity(userid="u1", permissions=["member"]),
    )
    monkeypatch.setattr(Result, "scalar_one_or_none", lambda self: None)

    with pytest.raises(InsertFailedError) as exc_info:
        await dispatch(
            "addBooking",
            member,
            {"title": "Fika", "start_time": START, "end_time": END, "item_ids": [bookables[0].id]},
        )

    assert exc_info.value.code == "INSERT_FAILED"
    count = (await db_session.execute(select(func.count()).select_from(Booking))).scalar()
    assert count == 0
