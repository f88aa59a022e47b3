"""
Bookings API: public submission, staff entry and listing, status transitions, service-desk updates,
and the two link-driven endpoints (client self-cancel, signed restaurant actions) that answer with HTML.
"""
import datetime as dt
import logging
import secrets
import time
from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from fastapi.responses import HTMLResponse
from pydantic import EmailStr, Field, field_validator
from sqlalchemy.orm import Session

from wheretoeat.api.deps import client_ip, get_action_signer, get_current_user_id, get_dispatcher
from wheretoeat.api.pages import error_page, status_page
from wheretoeat.api.schemas import TIME_PATTERN, CamelModel
from wheretoeat.config import settings
from wheretoeat.core.constants import CLIENT_ID_COOKIE_MAX_AGE, CLIENT_ID_COOKIE_NAME, MAX_PARTY_SIZE
from wheretoeat.core.errors import AppError, ValidationFailed
from wheretoeat.db.session import get_db
from wheretoeat.services import booking_service
from wheretoeat.services.action_tokens import ActionSigner
from wheretoeat.services.booking_service import ClientOrigin, NewBooking, booking_to_dict
from wheretoeat.services.booking_states import CONFIRMED, REFUSED, WAITING, is_valid_status, status_label
from wheretoeat.services.notifications import NotificationDispatcher
from wheretoeat.services.restaurant_service import get_owned_restaurant

router = APIRouter()
logger = logging.getLogger(__name__)


class PublicBookingBody(CamelModel):
    restaurant_id: int
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN)
    guests: int = Field(..., ge=1, le=MAX_PARTY_SIZE)
    children: int = Field(0, ge=0, le=MAX_PARTY_SIZE)
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=64)
    special_request: str | None = Field(None, max_length=2000)
    newsletter: bool = False

    def to_new_booking(self) -> NewBooking:
        return NewBooking(
            restaurant_id=self.restaurant_id,
            date=self.date,
            time=self.time,
            guests=self.guests,
            children=self.children,
            first_name=self.first_name,
            last_name=self.last_name,
            email=str(self.email),
            phone=self.phone,
            special_request=self.special_request,
            newsletter=self.newsletter,
        )


class StaffBookingBody(CamelModel):
    restaurant_id: int
    date: dt.date
    time: str = Field(..., pattern=TIME_PATTERN)
    guests: int = Field(..., ge=1, le=MAX_PARTY_SIZE)
    children: int = Field(0, ge=0, le=MAX_PARTY_SIZE)
    first_name: str = Field(..., min_length=1, max_length=120)
    last_name: str = Field(..., min_length=1, max_length=120)
    email: str = Field("", max_length=255)
    phone: str = Field("", max_length=64)
    special_request: str | None = Field(None, max_length=2000)
    status: str | None = None
    table_id: str | None = None
    zone_id: str | None = None

    def to_new_booking(self) -> NewBooking:
        return NewBooking(
            restaurant_id=self.restaurant_id,
            date=self.date,
            time=self.time,
            guests=self.guests,
            children=self.children,
            first_name=self.first_name,
            last_name=self.last_name,
            email=self.email,
            phone=self.phone,
            special_request=self.special_request,
        )


class StatusBody(CamelModel):
    status: str
    version: int | None = None


class DepartureBody(CamelModel):
    bill_amount: float | None = Field(None, ge=0, allow_inf_nan=False)

    @field_validator("bill_amount", mode="before")
    @classmethod
    def empty_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class TableBody(CamelModel):
    table_id: str | None = None
    zone_id: str | None = None


def _new_client_id() -> str:
    return f"client_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


# --- Public submission ---


@router.post("", status_code=201)
def create_booking(
    body: PublicBookingBody,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    signer: ActionSigner = Depends(get_action_signer),
) -> dict[str, Any]:
    """
    Public booking request. Status is pending when the slot still has online capacity,
    waiting otherwise. Issues a long-lived clientId cookie on first visit.
    """
    cid = request.cookies.get(CLIENT_ID_COOKIE_NAME)
    if not cid:
        cid = _new_client_id()
        response.set_cookie(
            CLIENT_ID_COOKIE_NAME,
            cid,
            max_age=CLIENT_ID_COOKIE_MAX_AGE,
            httponly=True,
            secure=settings.session_cookie_secure,
            samesite="strict",
        )
    origin = ClientOrigin(ip=client_ip(request), client_id=cid)
    booking = booking_service.create_public_booking(
        db, body.to_new_booking(), origin, dispatcher=dispatcher, signer=signer
    )
    return booking_to_dict(booking)


# --- Staff ---


@router.post("/owner", status_code=201)
def create_owner_booking(
    body: StaffBookingBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    """Booking entered by the restaurant; an explicit status bypasses the capacity check."""
    booking = booking_service.create_staff_booking(
        db,
        body.to_new_booking(),
        user_id,
        status=body.status or None,
        table_id=body.table_id,
        zone_id=body.zone_id,
    )
    return booking_to_dict(booking)


@router.get("/restaurant/{restaurant_id}")
def list_bookings(
    restaurant_id: int,
    source: str | None = Query(None, pattern="^(online|staff)$"),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> list[dict[str, Any]]:
    """All bookings of an owned restaurant; ?source=online keeps public submissions only."""
    get_owned_restaurant(db, restaurant_id, user_id)
    return [booking_to_dict(b) for b in booking_service.list_restaurant_bookings(db, restaurant_id, source)]


@router.patch("/{booking_id}/status")
def update_status(
    booking_id: int,
    body: StatusBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    signer: ActionSigner = Depends(get_action_signer),
) -> dict[str, Any]:
    if not is_valid_status(body.status):
        raise ValidationFailed("Statut invalide")
    booking, restaurant = booking_service.get_owned_booking(db, booking_id, user_id)
    transition = booking_service.staff_change_status(
        db,
        booking,
        restaurant,
        body.status,
        dispatcher=dispatcher,
        signer=signer,
        expected_version=body.version,
    )
    return {**booking_to_dict(booking), "unchanged": not transition.changed}


@router.patch("/{booking_id}/arrival")
def mark_arrival(
    booking_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    booking, _ = booking_service.get_owned_booking(db, booking_id, user_id)
    return booking_to_dict(booking_service.mark_arrival(db, booking))


@router.patch("/{booking_id}/bill-requested")
def mark_bill_requested(
    booking_id: int,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    booking, _ = booking_service.get_owned_booking(db, booking_id, user_id)
    return booking_to_dict(booking_service.mark_bill_requested(db, booking))


@router.patch("/{booking_id}/departure")
def mark_departure(
    booking_id: int,
    body: DepartureBody | None = Body(None),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    booking, _ = booking_service.get_owned_booking(db, booking_id, user_id)
    bill_amount = body.bill_amount if body else None
    return booking_to_dict(booking_service.mark_departure(db, booking, bill_amount))


@router.patch("/{booking_id}/table")
def assign_table(
    booking_id: int,
    body: TableBody,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    booking, _ = booking_service.get_owned_booking(db, booking_id, user_id)
    return booking_to_dict(booking_service.assign_table(db, booking, body.table_id, body.zone_id))


# --- Email links (HTML) ---


_ACTION_DONE = {
    CONFIRMED: ("Réservation confirmée", "La réservation a été confirmée. Le client a été prévenu par email."),
    REFUSED: ("Réservation refusée", "La réservation a été refusée. Le client a été prévenu par email."),
    WAITING: ("Liste d'attente", "La réservation a été placée en liste d'attente. Le client a été prévenu par email."),
}


@router.get("/cancel/{cancel_token}", response_class=HTMLResponse)
def cancel_from_link(cancel_token: str, db: Session = Depends(get_db)) -> HTMLResponse:
    """Client self-service cancel. Repeats show the 'already cancelled' page."""
    try:
        outcome = booking_service.self_cancel(db, cancel_token)
    except AppError as e:
        return error_page(e)
    name = outcome.restaurant.name
    if not outcome.changed:
        return status_page("Déjà annulée", f"Votre réservation chez {name} est déjà annulée.")
    return status_page(
        "Réservation annulée",
        f"Votre réservation chez {name} du {outcome.booking.date} à {outcome.booking.time} a bien été annulée.",
    )


@router.get("/action/{cancel_token}/{action}", response_class=HTMLResponse)
def action_from_link(
    cancel_token: str,
    action: str,
    sig: str | None = Query(None),
    db: Session = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    signer: ActionSigner = Depends(get_action_signer),
) -> HTMLResponse:
    """Restaurant one-click action (confirm / refuse / waiting), authorized by the HMAC signature."""
    try:
        outcome = booking_service.apply_link_action(
            db, cancel_token, action, sig, dispatcher=dispatcher, signer=signer
        )
    except AppError as e:
        return error_page(e)
    status = outcome.booking.status
    if not outcome.changed:
        label = status_label(status).lower()
        return status_page("Déjà traitée", f"Cette réservation est déjà dans l'état « {label} ». Aucun changement.")
    title, message = _ACTION_DONE.get(status, ("Réservation mise à jour", status_label(status)))
    return status_page(title, message)
