from wheretoeat.models.booking import Booking
from wheretoeat.models.client import Client
from wheretoeat.models.closed_day import ClosedDay
from wheretoeat.models.restaurant import Restaurant
from wheretoeat.models.user import User

__all__ = [
    "Booking",
    "Client",
    "ClosedDay",
    "Restaurant",
    "User",
]
