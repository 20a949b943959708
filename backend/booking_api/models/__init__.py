from booking_api.models.bookable import Bookable, BookableType
from booking_api.models.booking import Booking, bookable_bookings

__all__ = ["Bookable", "BookableType", "Booking", "bookable_bookings"]
