from booking_api.schemas.caller import CallerIdentity
from booking_api.schemas.paging import PageArgs
from booking_api.schemas.booking import AddBookingArgs, SetAcceptedArgs
from booking_api.schemas.graphql import GraphQLRequest

__all__ = [
    "CallerIdentity",
    "PageArgs",
    "AddBookingArgs", "SetAcceptedArgs",
    "GraphQLRequest",
]
