"""
GraphQL schema. Root fields delegate to the operation registry; nested
relationship fields go through the request's relation loaders.

Field names are kept exactly as declared (no automatic camel-casing) so the
wire names stay `start_time`, `booker_id`, `maxItems`, ...
"""

import graphene
from graphene.types.datetime import DateTime

from booking_api.schemas.paging import DEFAULT_MAX_ITEMS
from booking_api.services.operations import dispatch


def _page_arguments() -> dict:
    return {
        "page": graphene.Int(default_value=0),
        "maxItems": graphene.Int(default_value=DEFAULT_MAX_ITEMS),
    }


class BookableNode(graphene.ObjectType):
    class Meta:
        name = "Bookable"

    id = graphene.Int(required=True)
    title = graphene.String(required=True)
    description = graphene.String(required=True)
    bookings = graphene.List(graphene.NonNull(lambda: BookingNode), required=True)
    bookable_type = graphene.String(required=True)

    @staticmethod
    async def resolve_bookings(parent, info):
        return await info.context.bookings_loader.load(parent.id)


class BookingNode(graphene.ObjectType):
    class Meta:
        name = "Booking"

    id = graphene.Int(required=True)
    title = graphene.String(required=True)
    items = graphene.List(graphene.NonNull(BookableNode), required=True)
    start_time = DateTime(required=True)
    end_time = DateTime(required=True)
    booker_id = graphene.String(required=True)
    accepted = graphene.Boolean(required=True)

    @staticmethod
    async def resolve_items(parent, info):
        return await info.context.items_loader.load(parent.id)


def _booking_list() -> graphene.List:
    return graphene.List(graphene.NonNull(BookingNode), required=True, **_page_arguments())


def _bookable_list() -> graphene.List:
    return graphene.List(graphene.NonNull(BookableNode), required=True, **_page_arguments())


class Query(graphene.ObjectType):
    bookings = _booking_list()
    activeBookings = _booking_list()
    acceptedBookings = _booking_list()
    facilities = _bookable_list()
    inventories = _bookable_list()
    bookables = _bookable_list()

    @staticmethod
    async def resolve_bookings(root, info, **kwargs):
        return await dispatch("bookings", info.context, kwargs)

    @staticmethod
    async def resolve_activeBookings(root, info, **kwargs):
        return await dispatch("activeBookings", info.context, kwargs)

    @staticmethod
    async def resolve_acceptedBookings(root, info, **kwargs):
        return await dispatch("acceptedBookings", info.context, kwargs)

    @staticmethod
    async def resolve_facilities(root, info, **kwargs):
        return await dispatch("facilities", info.context, kwargs)

    @staticmethod
    async def resolve_inventories(root, info, **kwargs):
        return await dispatch("inventories", info.context, kwargs)

    @staticmethod
    async def resolve_bookables(root, info, **kwargs):
        return await dispatch("bookables", info.context, kwargs)


class Mutation(graphene.ObjectType):
    addBooking = graphene.Field(
        BookingNode,
        title=graphene.String(required=True),
        start_time=DateTime(required=True),
        end_time=DateTime(required=True),
        item_ids=graphene.List(graphene.NonNull(graphene.Int), required=True),
    )
    setAccepted = graphene.Field(
        BookingNode,
        id=graphene.Int(required=True),
        accept=graphene.Boolean(default_value=True),
    )

    @staticmethod
    async def resolve_addBooking(root, info, **kwargs):
        return await dispatch("addBooking", info.context, kwargs)

    @staticmethod
    async def resolve_setAccepted(root, info, **kwargs):
        return await dispatch("setAccepted", info.context, kwargs)


schema = graphene.Schema(query=Query, mutation=Mutation, auto_camelcase=False)
