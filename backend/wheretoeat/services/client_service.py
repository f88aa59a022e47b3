"""
Client directory: one row per guest per restaurant, kept up to date from bookings.
"""
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from wheretoeat.models.client import Client

logger = logging.getLogger(__name__)


def normalize_phone(phone: str | None) -> str:
    """Directory key for a phone number: every kind of whitespace removed."""
    return "".join((phone or "").split())


def find_client(
    db: Session,
    restaurant_id: int,
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
) -> Client | None:
    """Match on whitespace-insensitive phone first, then on email + first + last name (case-insensitive).

    Directory phones are stored normalized; rows written with plain spaces still match.
    """
    phone_key = normalize_phone(phone)
    if phone_key:
        row = (
            db.query(Client)
            .filter(
                Client.restaurant_id == restaurant_id,
                or_(Client.phone == phone_key, func.replace(Client.phone, " ", "") == phone_key),
            )
            .first()
        )
        if row:
            return row
    email_key = (email or "").strip().lower()
    if not email_key:
        return None
    return (
        db.query(Client)
        .filter(
            Client.restaurant_id == restaurant_id,
            func.lower(Client.email) == email_key,
            func.lower(Client.first_name) == first_name.strip().lower(),
            func.lower(Client.last_name) == last_name.strip().lower(),
        )
        .first()
    )


def upsert_client_from_booking(
    db: Session,
    restaurant_id: int,
    first_name: str,
    last_name: str,
    email: str,
    phone: str,
) -> Client:
    """Add or refresh the directory entry for a booking's guest. Caller commits."""
    row = find_client(db, restaurant_id, first_name, last_name, email, phone)
    email_norm = (email or "").strip().lower()
    phone_norm = normalize_phone(phone)
    if row:
        row.first_name = first_name
        row.last_name = last_name
        if email_norm:
            row.email = email_norm
        if phone_norm:
            row.phone = phone_norm
    else:
        row = Client(
            restaurant_id=restaurant_id,
            first_name=first_name,
            last_name=last_name,
            email=email_norm,
            phone=phone_norm,
        )
        db.add(row)
    db.flush()
    return row


def record_visit_spend(db: Session, restaurant_id: int, booking, amount: float) -> Client | None:
    """Add a settled bill to the guest's totals. Caller commits."""
    row = find_client(db, restaurant_id, booking.first_name, booking.last_name, booking.email, booking.phone)
    if row is None:
        logger.debug("No client entry for booking %s; bill of %s not recorded", booking.id, amount)
        return None
    row.total_spent = (row.total_spent or 0.0) + amount
    row.visit_count = (row.visit_count or 0) + 1
    return row
