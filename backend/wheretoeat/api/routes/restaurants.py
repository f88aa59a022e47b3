"""
Restaurant settings API for owners: create, list own restaurants, update settings.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from wheretoeat.api.deps import get_current_user_id
from wheretoeat.api.schemas import CamelModel, DayHours, Weekday, dump_opening_hours
from wheretoeat.db.session import get_db
from wheretoeat.models.restaurant import DEFAULT_CAPACITY, Restaurant
from wheretoeat.services import restaurant_service
from wheretoeat.services.restaurant_service import restaurant_to_dict

router = APIRouter()
logger = logging.getLogger(__name__)


class CreateRestaurantBody(CamelModel):
    name: str = Field(..., min_length=1, max_length=256)
    cuisine: str | None = Field(None, max_length=120)
    location: str | None = Field(None, max_length=256)
    description: str | None = None
    address: str | None = Field(None, max_length=512)
    phone: str | None = Field(None, max_length=64)
    public_email: EmailStr | None = None
    website: str | None = Field(None, max_length=512)
    price_range: str | None = Field(None, max_length=16)
    capacity: int = Field(DEFAULT_CAPACITY, ge=0)
    online_capacity: int | None = Field(None, ge=0)
    min_guests: int | None = Field(None, ge=0)
    max_guests: int | None = Field(None, ge=0)
    opening_hours: dict[Weekday, DayHours] | None = None


class UpdateRestaurantBody(CamelModel):
    """Partial settings update: only the fields present in the body are written."""

    name: str | None = Field(None, min_length=1, max_length=256)
    cuisine: str | None = Field(None, max_length=120)
    location: str | None = Field(None, max_length=256)
    description: str | None = None
    address: str | None = Field(None, max_length=512)
    phone: str | None = Field(None, max_length=64)
    public_email: EmailStr | None = None
    website: str | None = Field(None, max_length=512)
    price_range: str | None = Field(None, max_length=16)
    capacity: int | None = Field(None, ge=0)
    online_capacity: int | None = Field(None, ge=0)
    min_guests: int | None = Field(None, ge=0)
    max_guests: int | None = Field(None, ge=0)
    opening_hours: dict[Weekday, DayHours] | None = None

    @field_validator("name")
    @classmethod
    def name_not_null(cls, v: str | None) -> str:
        if v is None:
            raise ValueError("ne peut pas être vide")
        return v


@router.post("", status_code=201)
def create_restaurant(
    body: CreateRestaurantBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    restaurant = Restaurant(
        owner_id=user_id,
        name=body.name,
        cuisine=body.cuisine,
        location=body.location,
        description=body.description,
        address=body.address,
        phone=body.phone,
        public_email=str(body.public_email) if body.public_email else None,
        website=body.website,
        price_range=body.price_range,
        capacity=body.capacity,
        online_capacity=restaurant_service.clamp_online_capacity(body.capacity, body.online_capacity),
        min_guests=body.min_guests,
        max_guests=body.max_guests,
        opening_hours=dump_opening_hours(body.opening_hours),
    )
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    logger.info("Restaurant %s created by %s", restaurant.id, user_id)
    return restaurant_to_dict(restaurant)


@router.get("/my-restaurants")
def my_restaurants(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> list[dict[str, Any]]:
    return [restaurant_to_dict(r) for r in restaurant_service.list_owned_restaurants(db, user_id)]


@router.put("/{restaurant_id}")
def update_restaurant(
    restaurant_id: int,
    body: UpdateRestaurantBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Partial update of owner settings. Unknown keys are ignored."""
    restaurant = restaurant_service.get_owned_restaurant(db, restaurant_id, user_id)
    changes = body.model_dump(by_alias=True, exclude_unset=True)
    return restaurant_to_dict(restaurant_service.update_settings(db, restaurant, changes))
