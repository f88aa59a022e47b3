"""
Public restaurant API used by the booking form: listing, detail, closed days, opening hours.
"""
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from wheretoeat.core.errors import NotFound
from wheretoeat.db.session import get_db
from wheretoeat.services import restaurant_service
from wheretoeat.services.restaurant_service import MSG_RESTAURANT_NOT_FOUND, closed_day_to_dict, restaurant_to_dict

router = APIRouter()


def _public_restaurant(db: Session, restaurant_id: int):
    restaurant = restaurant_service.get_restaurant(db, restaurant_id)
    if restaurant.is_blocked:
        raise NotFound(MSG_RESTAURANT_NOT_FOUND)
    return restaurant


@router.get("/restaurants")
def list_restaurants(db: Session = Depends(get_db)) -> list[dict[str, Any]]:
    return [restaurant_to_dict(r) for r in restaurant_service.list_public_restaurants(db)]


@router.get("/restaurants/{restaurant_id}")
def get_restaurant(restaurant_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    return restaurant_to_dict(_public_restaurant(db, restaurant_id))


@router.get("/restaurants/{restaurant_id}/closed-days")
def restaurant_closed_days(
    restaurant_id: int,
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    _public_restaurant(db, restaurant_id)
    return [closed_day_to_dict(c) for c in restaurant_service.list_closed_days(db, restaurant_id, year, month)]


@router.get("/restaurants/{restaurant_id}/opening-hours")
def restaurant_opening_hours(restaurant_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    restaurant = _public_restaurant(db, restaurant_id)
    return {"restaurantId": restaurant.id, "openingHours": restaurant.opening_hours}
