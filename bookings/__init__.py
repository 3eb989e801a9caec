"""
Bookings domain package.

Public API:
- Domain models: Booking, ServiceType, InvalidBooking
- Persistence collaborator: RecentBookings
"""
from .models import Booking, ServiceType, InvalidBooking
from .recent import RecentBookings

__all__ = ["Booking",
           "ServiceType",
             "InvalidBooking",
               "RecentBookings",
               ]
