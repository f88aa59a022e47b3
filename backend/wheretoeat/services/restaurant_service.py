"""
Restaurant lookups, ownership checks, settings updates and closed days.
"""
import logging
from typing import Any

from sqlalchemy.orm import Session

from wheretoeat.core.errors import Forbidden, NotFound, ValidationFailed
from wheretoeat.models.closed_day import ClosedDay
from wheretoeat.models.restaurant import DEFAULT_CAPACITY, Restaurant

logger = logging.getLogger(__name__)

MSG_RESTAURANT_NOT_FOUND = "Restaurant introuvable"

# Fields an owner may change through PUT /api/restaurants/{id} (API name -> column)
EDITABLE_FIELDS = {
    "name": "name",
    "cuisine": "cuisine",
    "location": "location",
    "description": "description",
    "address": "address",
    "phone": "phone",
    "publicEmail": "public_email",
    "website": "website",
    "priceRange": "price_range",
    "capacity": "capacity",
    "onlineCapacity": "online_capacity",
    "minGuests": "min_guests",
    "maxGuests": "max_guests",
    "openingHours": "opening_hours",
}


def get_restaurant(db: Session, restaurant_id: int, *, for_update: bool = False) -> Restaurant:
    q = db.query(Restaurant).filter(Restaurant.id == restaurant_id)
    if for_update:
        q = q.with_for_update()
    restaurant = q.one_or_none()
    if restaurant is None:
        raise NotFound(MSG_RESTAURANT_NOT_FOUND)
    return restaurant


def ensure_owner(restaurant: Restaurant, user_id: str) -> None:
    if restaurant.owner_id != user_id:
        raise Forbidden()


def get_owned_restaurant(db: Session, restaurant_id: int, user_id: str) -> Restaurant:
    restaurant = get_restaurant(db, restaurant_id)
    ensure_owner(restaurant, user_id)
    return restaurant


def list_public_restaurants(db: Session) -> list[Restaurant]:
    return (
        db.query(Restaurant)
        .filter(Restaurant.approval_status == "approved", Restaurant.is_blocked.is_(False))
        .order_by(Restaurant.name.asc())
        .all()
    )


def list_owned_restaurants(db: Session, user_id: str) -> list[Restaurant]:
    return db.query(Restaurant).filter(Restaurant.owner_id == user_id).order_by(Restaurant.id.asc()).all()


def clamp_online_capacity(capacity: int | None, online_capacity: int | None) -> int | None:
    """The online ceiling never exceeds total capacity."""
    if online_capacity is None:
        return None
    total = capacity if capacity is not None else DEFAULT_CAPACITY
    return min(online_capacity, total)


def update_settings(db: Session, restaurant: Restaurant, changes: dict[str, Any]) -> Restaurant:
    """Apply validated owner edits (API names, as dumped from the request body).

    Lowering capacity clamps the online ceiling down with it.
    """
    updates = {EDITABLE_FIELDS[k]: v for k, v in changes.items() if k in EDITABLE_FIELDS}
    if not updates:
        raise ValidationFailed("Aucun champ valide à mettre à jour")
    if "capacity" in updates and updates["capacity"] is None:
        updates["capacity"] = DEFAULT_CAPACITY
    for column, value in updates.items():
        setattr(restaurant, column, value)
    clamped = clamp_online_capacity(restaurant.capacity, restaurant.online_capacity)
    if clamped != restaurant.online_capacity:
        logger.info(
            "Restaurant %s: online capacity %s clamped to capacity %s",
            restaurant.id, restaurant.online_capacity, clamped,
        )
        restaurant.online_capacity = clamped
    db.commit()
    db.refresh(restaurant)
    return restaurant


def restaurant_to_dict(r: Restaurant) -> dict[str, Any]:
    return {
        "id": r.id,
        "ownerId": r.owner_id,
        "name": r.name,
        "cuisine": r.cuisine,
        "location": r.location,
        "description": r.description,
        "address": r.address,
        "phone": r.phone,
        "publicEmail": r.public_email,
        "website": r.website,
        "priceRange": r.price_range,
        "capacity": r.capacity,
        "onlineCapacity": r.online_capacity,
        "minGuests": r.min_guests,
        "maxGuests": r.max_guests,
        "openingHours": r.opening_hours,
        "approvalStatus": r.approval_status,
        "isBlocked": r.is_blocked,
        "createdAt": r.created_at.isoformat() if r.created_at else None,
    }


# --- Closed days ---


def list_closed_days(db: Session, restaurant_id: int, year: int | None = None, month: int | None = None) -> list[ClosedDay]:
    q = db.query(ClosedDay).filter(ClosedDay.restaurant_id == restaurant_id)
    if year and month:
        q = q.filter(ClosedDay.date.like(f"{year:04d}-{month:02d}-%"))
    return q.order_by(ClosedDay.date.asc()).all()


def add_closed_day(db: Session, restaurant_id: int, date: str, service: str = "all", reason: str | None = None) -> ClosedDay:
    row = ClosedDay(restaurant_id=restaurant_id, date=date, service=service or "all", reason=reason)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("Restaurant %s closed on %s (%s)", restaurant_id, date, row.service)
    return row


def get_closed_day(db: Session, closed_day_id: int) -> ClosedDay:
    row = db.query(ClosedDay).filter(ClosedDay.id == closed_day_id).one_or_none()
    if row is None:
        raise NotFound("Jour de fermeture introuvable")
    return row


def delete_closed_day(db: Session, row: ClosedDay) -> None:
    db.delete(row)
    db.commit()


def closed_day_to_dict(row: ClosedDay) -> dict[str, Any]:
    return {
        "id": row.id,
        "restaurantId": row.restaurant_id,
        "date": row.date,
        "service": row.service,
        "reason": row.reason,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
    }
