"""
Capacity ledger: covers already committed to a slot, and the initial status a new request gets.

A slot is an exact (restaurant_id, date, time) triple. Only pending and confirmed bookings
count; the figure is computed on demand and never stored.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from wheretoeat.models.booking import Booking
from wheretoeat.models.restaurant import DEFAULT_CAPACITY, Restaurant
from wheretoeat.services.booking_states import COMMITTED_STATUSES, CONFIRMED, PENDING, WAITING


def committed_guests(db: Session, restaurant_id: int, date: str, time: str) -> int:
    """Sum of guests + children over pending/confirmed bookings in the slot."""
    total = (
        db.query(func.coalesce(func.sum(Booking.guests + func.coalesce(Booking.children, 0)), 0))
        .filter(
            Booking.restaurant_id == restaurant_id,
            Booking.date == date,
            Booking.time == time,
            Booking.status.in_(COMMITTED_STATUSES),
        )
        .scalar()
    )
    return int(total or 0)


def fits(existing: int, requested: int, ceiling: int) -> bool:
    return existing + requested <= ceiling


def admission_status(existing: int, requested: int, ceiling: int, *, admitted: str = PENDING) -> str:
    """admitted when the request fits under the ceiling, waiting otherwise."""
    return admitted if fits(existing, requested, ceiling) else WAITING


def online_status(db: Session, restaurant: Restaurant, date: str, time: str, requested: int) -> str:
    """Initial status of a public submission, checked against the online ceiling."""
    existing = committed_guests(db, restaurant.id, date, time)
    return admission_status(existing, requested, restaurant.admission_ceiling)


def staff_status(db: Session, restaurant: Restaurant, date: str, time: str, requested: int) -> str:
    """Initial status of a staff-entered booking without explicit status, checked against full capacity."""
    existing = committed_guests(db, restaurant.id, date, time)
    capacity = restaurant.capacity if restaurant.capacity is not None else DEFAULT_CAPACITY
    return admission_status(existing, requested, capacity, admitted=CONFIRMED)
