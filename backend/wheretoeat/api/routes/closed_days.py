"""
Closed days API for owners. A closed date refuses every booking for that restaurant and date.
"""
import datetime as dt
from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session

from wheretoeat.api.deps import get_current_user_id
from wheretoeat.api.schemas import CamelModel
from wheretoeat.db.session import get_db
from wheretoeat.services import restaurant_service
from wheretoeat.services.restaurant_service import closed_day_to_dict

router = APIRouter()


class ClosedDayBody(CamelModel):
    date: dt.date
    service: str = Field("all", max_length=16)
    reason: str | None = Field(None, max_length=500)


@router.get("/restaurant/{restaurant_id}")
def list_closed_days(
    restaurant_id: int,
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> list[dict[str, Any]]:
    restaurant_service.get_owned_restaurant(db, restaurant_id, user_id)
    return [closed_day_to_dict(c) for c in restaurant_service.list_closed_days(db, restaurant_id, year, month)]


@router.post("/restaurant/{restaurant_id}", status_code=201)
def add_closed_day(
    restaurant_id: int,
    body: ClosedDayBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    restaurant_service.get_owned_restaurant(db, restaurant_id, user_id)
    row = restaurant_service.add_closed_day(db, restaurant_id, body.date.isoformat(), body.service, body.reason)
    return closed_day_to_dict(row)


@router.delete("/{closed_day_id}")
def delete_closed_day(
    closed_day_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, bool]:
    row = restaurant_service.get_closed_day(db, closed_day_id)
    restaurant_service.get_owned_restaurant(db, row.restaurant_id, user_id)
    restaurant_service.delete_closed_day(db, row)
    return {"ok": True}
