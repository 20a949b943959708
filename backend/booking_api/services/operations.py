"""
Operation registry: every graph operation by name, with its input model,
capability requirements and handler.

`dispatch` is the only way resolvers reach storage:

  1. authorization gate (before anything touches the database)
  2. input validation with the operation's pydantic model
  3. handler under the request's storage lock
  4. commit for writes on success, rollback on any failure of a write or
     on a storage failure of a read; cached relations are dropped after
     every commit

Storage failures of any kind (driver errors, refused connections, pool
timeouts) surface as StorageError.
"""

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

import structlog
from pydantic import BaseModel, ValidationError

from booking_api.core.authorization import Capability, HasRole, IsAuthenticated, authorize
from booking_api.core.exceptions import (
    AuthenticationRequiredError,
    InvalidInputError,
    OperationNotFoundError,
    OperationNotImplementedError,
    PermissionDeniedError,
)
from booking_api.core.logging import get_logger
from booking_api.core.metrics import record_db_operation, record_denial, record_operation
from booking_api.db.session import STORAGE_FAILURES, rollback_session, storage_error
from booking_api.models.bookable import BookableType
from booking_api.schemas.booking import AddBookingArgs, SetAcceptedArgs
from booking_api.schemas.paging import PageArgs
from booking_api.services import bookable_service, booking_service
from booking_api.services.context import RequestContext

logger = get_logger(__name__)

Handler = Callable[[RequestContext, Any], Awaitable[Any]]


@dataclass(frozen=True)
class Operation:
    name: str
    args_model: type[BaseModel]
    handler: Handler
    requires: Union[tuple[Capability, ...], Callable[[RequestContext], tuple[Capability, ...]]] = ()
    writes: bool = False

    def requirements(self, ctx: RequestContext) -> tuple[Capability, ...]:
        if callable(self.requires):
            return self.requires(ctx)
        return self.requires


async def _bookings(ctx: RequestContext, args: PageArgs):
    bookings = await booking_service.list_bookings(ctx.db, args.page, args.max_items)
    ctx.prime_bookings(bookings)
    return bookings


async def _accepted_bookings(ctx: RequestContext, args: PageArgs):
    bookings = await booking_service.list_bookings(
        ctx.db, args.page, args.max_items, accepted_only=True
    )
    ctx.prime_bookings(bookings)
    return bookings


async def _active_bookings(ctx: RequestContext, args: PageArgs):
    # What makes a booking "active" has not been settled yet
    raise OperationNotImplementedError("activeBookings is not implemented")


def _bookables_of(bookable_type: Optional[BookableType]) -> Handler:
    async def handler(ctx: RequestContext, args: PageArgs):
        bookables = await bookable_service.list_bookables(
            ctx.db, args.page, args.max_items, bookable_type=bookable_type
        )
        ctx.prime_bookables(bookables)
        return bookables

    return handler


async def _add_booking(ctx: RequestContext, args: AddBookingArgs):
    booking = await booking_service.add_booking(
        ctx.db,
        title=args.title,
        booker_id=ctx.caller.userid,
        start_time=args.start_time,
        end_time=args.end_time,
        item_ids=args.item_ids,
    )
    ctx.prime_bookings([booking])
    return booking


async def _set_accepted(ctx: RequestContext, args: SetAcceptedArgs):
    booking = await booking_service.set_accepted(ctx.db, args.id, args.accept)
    ctx.prime_bookings([booking])
    return booking


def _accept_roles(ctx: RequestContext) -> tuple[Capability, ...]:
    return (IsAuthenticated(), HasRole(ctx.settings.ACCEPT_ROLES))


OPERATIONS: dict[str, Operation] = {
    op.name: op
    for op in (
        Operation("bookings", PageArgs, _bookings),
        Operation("activeBookings", PageArgs, _active_bookings),
        Operation("acceptedBookings", PageArgs, _accepted_bookings),
        Operation("facilities", PageArgs, _bookables_of(BookableType.FACILITY)),
        Operation("inventories", PageArgs, _bookables_of(BookableType.INVENTORY)),
        Operation("bookables", PageArgs, _bookables_of(None)),
        Operation(
            "addBooking",
            AddBookingArgs,
            _add_booking,
            requires=(IsAuthenticated(),),
            writes=True,
        ),
        Operation(
            "setAccepted",
            SetAcceptedArgs,
            _set_accepted,
            requires=_accept_roles,
            writes=True,
        ),
    )
}


async def dispatch(name: str, ctx: RequestContext, raw_args: dict[str, Any]) -> Any:
    operation = OPERATIONS.get(name)
    if operation is None:
        raise OperationNotFoundError(f"Unknown operation: {name}")

    started = time.perf_counter()
    status = "error"
    with structlog.contextvars.bound_contextvars(operation=name):
        try:
            try:
                authorize(operation.requirements(ctx), ctx.caller)
            except (AuthenticationRequiredError, PermissionDeniedError) as e:
                status = "denied"
                record_denial(name, e.code.lower())
                logger.warning(
                    "operation_denied",
                    code=e.code,
                    userid=ctx.caller.userid if ctx.caller else None,
                )
                raise

            try:
                args = operation.args_model.model_validate(raw_args)
            except ValidationError as e:
                status = "invalid"
                raise InvalidInputError(
                    f"Invalid arguments for {name}",
                    errors=[
                        {"loc": [str(part) for part in err["loc"]], "msg": err["msg"]}
                        for err in e.errors()
                    ],
                ) from e

            async with ctx.db_lock:
                try:
                    result = await operation.handler(ctx, args)
                    if operation.writes:
                        await ctx.db.commit()
                        ctx.invalidate_relations()
                except STORAGE_FAILURES as e:
                    await rollback_session(ctx.db, name)
                    record_db_operation("rollback")
                    raise storage_error(e, name) from e
                except Exception:
                    if operation.writes:
                        await rollback_session(ctx.db, name)
                        record_db_operation("rollback")
                    raise

            status = "success"
            return result
        finally:
            record_operation(name, status, time.perf_counter() - started)
