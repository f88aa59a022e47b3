"""
Booking service: admission of new bookings, status transitions and service-desk updates.

Admission reads the committed covers for the slot and inserts the booking in the same transaction;
with SERIALIZE_SLOT_ADMISSION the restaurant row is locked first so concurrent requests for one
restaurant are admitted one after another. Emails are queued on the notification dispatcher after
the commit and never delay or fail the request.
"""
import logging
import time as time_module
from dataclasses import dataclass
from datetime import date as date_type
from datetime import datetime, timedelta, timezone
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from wheretoeat.config import settings
from wheretoeat.core.constants import (
    FRAUD_WINDOW_HOURS,
    LINK_ACTIONS,
    OWNER_CLIENT_ID_PREFIX,
    OWNER_CREATED_IP,
    SERVICE_TIME_FORMAT,
)
from wheretoeat.core.errors import Conflict, InvalidSignature, NotFound, ValidationFailed
from wheretoeat.models.booking import Booking
from wheretoeat.models.restaurant import Restaurant
from wheretoeat.services import capacity, client_service, notifications
from wheretoeat.services.action_tokens import ActionSigner, new_cancel_token
from wheretoeat.services.booking_states import (
    CANCELLED,
    REFUSED,
    Transition,
    is_valid_status,
    plan_transition,
)
from wheretoeat.services.email_templates import BookingSnapshot, RestaurantSnapshot
from wheretoeat.services.notifications import NotificationDispatcher
from wheretoeat.services.opening_hours import MSG_DATE_CLOSED, ensure_bookable, is_date_closed
from wheretoeat.services.restaurant_service import ensure_owner, get_restaurant

logger = logging.getLogger(__name__)

MSG_BOOKING_NOT_FOUND = "Réservation introuvable"
MSG_DEVICE_EMAIL_MISMATCH = (
    "Cet appareil est déjà associé à un autre compte email. "
    "Veuillez utiliser la même adresse email pour toutes vos réservations."
)
MSG_DUPLICATE_SLOT = (
    "Vous avez déjà une réservation sur ce créneau horaire. Veuillez choisir un autre horaire."
)
MSG_ALREADY_LEFT = "Ce client est déjà parti : la table ne peut plus être modifiée."
MSG_INVALID_ACTION = "Action invalide"

SOURCE_ONLINE = "online"
SOURCE_STAFF = "staff"


@dataclass(frozen=True)
class NewBooking:
    restaurant_id: int
    date: date_type
    time: str
    guests: int
    children: int
    first_name: str
    last_name: str
    email: str
    phone: str
    special_request: str | None = None
    newsletter: bool = False

    @property
    def covers(self) -> int:
        return self.guests + self.children


@dataclass(frozen=True)
class ClientOrigin:
    ip: str
    client_id: str


@dataclass(frozen=True)
class LinkOutcome:
    booking: Booking
    restaurant: Restaurant
    changed: bool


def _commit(db: Session) -> None:
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        logger.warning("Booking changed concurrently; rejecting write: %s", e)
        raise Conflict() from e


def _local_now() -> datetime:
    return datetime.now(ZoneInfo(settings.app_timezone))


def is_staff_entered(booking: Booking) -> bool:
    return booking.client_ip == OWNER_CREATED_IP or (booking.client_id or "").startswith(OWNER_CLIENT_ID_PREFIX)


def booking_source(booking: Booking) -> str:
    return SOURCE_STAFF if is_staff_entered(booking) else SOURCE_ONLINE


# --- Lookups ---


def get_booking(db: Session, booking_id: int) -> Booking:
    booking = db.query(Booking).filter(Booking.id == booking_id).one_or_none()
    if booking is None:
        raise NotFound(MSG_BOOKING_NOT_FOUND)
    return booking


def get_booking_by_token(db: Session, cancel_token: str) -> Booking:
    booking = db.query(Booking).filter(Booking.cancel_token == cancel_token).one_or_none()
    if booking is None:
        raise NotFound(MSG_BOOKING_NOT_FOUND)
    return booking


def get_owned_booking(db: Session, booking_id: int, user_id: str) -> tuple[Booking, Restaurant]:
    """Existence, then ownership of the booking's restaurant."""
    booking = get_booking(db, booking_id)
    restaurant = get_restaurant(db, booking.restaurant_id)
    ensure_owner(restaurant, user_id)
    return booking, restaurant


def list_restaurant_bookings(db: Session, restaurant_id: int, source: str | None = None) -> list[Booking]:
    rows = (
        db.query(Booking)
        .filter(Booking.restaurant_id == restaurant_id)
        .order_by(Booking.date.asc(), Booking.time.asc(), Booking.id.asc())
        .all()
    )
    if source:
        rows = [b for b in rows if booking_source(b) == source]
    return rows


# --- Creation ---


def _check_client_origin(db: Session, data: NewBooking, origin: ClientOrigin) -> None:
    """One device / IP per email over the fraud window, and one booking per IP per slot."""
    since = datetime.now(timezone.utc) - timedelta(hours=FRAUD_WINDOW_HOURS)
    email = data.email.strip().lower()
    for column, value in ((Booking.client_ip, origin.ip), (Booking.client_id, origin.client_id)):
        if not value:
            continue
        mismatch = (
            db.query(Booking.id)
            .filter(column == value, Booking.email != email, Booking.created_at >= since)
            .first()
        )
        if mismatch is not None:
            logger.info("Booking refused: %s already used with another email", column.key)
            raise ValidationFailed(MSG_DEVICE_EMAIL_MISMATCH)
    duplicate = (
        db.query(Booking.id)
        .filter(
            Booking.client_ip == origin.ip,
            Booking.date == data.date.isoformat(),
            Booking.time == data.time,
            Booking.status.notin_((CANCELLED, REFUSED)),
        )
        .first()
    )
    if duplicate is not None:
        raise ValidationFailed(MSG_DUPLICATE_SLOT)


def _insert_booking(
    db: Session,
    data: NewBooking,
    *,
    status: str,
    client_ip: str,
    client_id: str,
    table_id: str | None = None,
    zone_id: str | None = None,
) -> Booking:
    booking = Booking(
        restaurant_id=data.restaurant_id,
        date=data.date.isoformat(),
        time=data.time,
        guests=data.guests,
        children=data.children,
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email.strip().lower(),
        phone=data.phone,
        special_request=data.special_request or None,
        newsletter=data.newsletter,
        status=status,
        cancel_token=new_cancel_token(),
        client_ip=client_ip,
        client_id=client_id,
        table_id=table_id,
        zone_id=zone_id,
    )
    db.add(booking)
    if data.first_name and data.last_name:
        client_service.upsert_client_from_booking(
            db, data.restaurant_id, data.first_name, data.last_name, data.email, data.phone
        )
    db.flush()
    return booking


def create_public_booking(
    db: Session,
    data: NewBooking,
    origin: ClientOrigin,
    *,
    dispatcher: NotificationDispatcher,
    signer: ActionSigner,
) -> Booking:
    """
    Online submission: closed dates and opening hours, provenance checks, then pending if the
    request fits under the online ceiling, waiting otherwise. Queues client and restaurant emails.
    """
    restaurant = get_restaurant(db, data.restaurant_id, for_update=settings.serialize_slot_admission)
    ensure_bookable(db, restaurant, data.date, data.time)
    _check_client_origin(db, data, origin)

    status = capacity.online_status(db, restaurant, data.date.isoformat(), data.time, data.covers)
    booking = _insert_booking(db, data, status=status, client_ip=origin.ip, client_id=origin.client_id)
    _commit(db)
    db.refresh(booking)
    logger.info(
        "Booking %s created for restaurant %s on %s %s (%s covers): %s",
        booking.id, restaurant.id, booking.date, booking.time, booking.covers, status,
    )

    notifications.notify_booking_created(
        dispatcher, signer, BookingSnapshot.of(booking), RestaurantSnapshot.of(restaurant)
    )
    return booking


def create_staff_booking(
    db: Session,
    data: NewBooking,
    user_id: str,
    *,
    status: str | None = None,
    table_id: str | None = None,
    zone_id: str | None = None,
) -> Booking:
    """
    Staff entry (phone, walk-in): no opening-hours check and no email. An explicit status is
    trusted as given; otherwise the booking is confirmed if it fits total capacity, waiting if not.
    """
    if status is not None and not is_valid_status(status):
        raise ValidationFailed("Statut invalide")
    restaurant = get_restaurant(db, data.restaurant_id, for_update=settings.serialize_slot_admission)
    ensure_owner(restaurant, user_id)
    if is_date_closed(db, restaurant.id, data.date.isoformat()):
        raise ValidationFailed(MSG_DATE_CLOSED)

    if status is None:
        status = capacity.staff_status(db, restaurant, data.date.isoformat(), data.time, data.covers)
    client_id = f"{OWNER_CLIENT_ID_PREFIX}{user_id}_{int(time_module.time() * 1000)}"
    booking = _insert_booking(
        db,
        data,
        status=status,
        client_ip=OWNER_CREATED_IP,
        client_id=client_id,
        table_id=table_id,
        zone_id=zone_id,
    )
    _commit(db)
    db.refresh(booking)
    logger.info("Staff booking %s created for restaurant %s by %s: %s", booking.id, restaurant.id, user_id, status)
    return booking


# --- Status transitions ---


def change_status(
    db: Session,
    booking: Booking,
    target: str,
    *,
    expected_version: int | None = None,
) -> Transition:
    """Validate and persist a status change. A repeat of the current status writes nothing."""
    if expected_version is not None and expected_version != booking.version:
        raise Conflict()
    transition = plan_transition(booking.status, target)
    if transition.changed:
        booking.status = target
        _commit(db)
        db.refresh(booking)
        logger.info("Booking %s: %s -> %s", booking.id, transition.previous, transition.target)
    return transition


def staff_change_status(
    db: Session,
    booking: Booking,
    restaurant: Restaurant,
    target: str,
    *,
    dispatcher: NotificationDispatcher,
    signer: ActionSigner,
    expected_version: int | None = None,
) -> Transition:
    transition = change_status(db, booking, target, expected_version=expected_version)
    if transition.changed:
        notifications.notify_status_changed(
            dispatcher, signer, BookingSnapshot.of(booking), RestaurantSnapshot.of(restaurant)
        )
    return transition


def apply_link_action(
    db: Session,
    cancel_token: str,
    action: str,
    sig: str | None,
    *,
    dispatcher: NotificationDispatcher,
    signer: ActionSigner,
) -> LinkOutcome:
    """Restaurant one-click action from the new-booking email (confirm / refuse / waiting)."""
    target = LINK_ACTIONS.get(action)
    if target is None:
        raise ValidationFailed(MSG_INVALID_ACTION)
    if not signer.verify(cancel_token, action, sig):
        logger.warning("Rejected %s link with bad signature", action)
        raise InvalidSignature()
    booking = get_booking_by_token(db, cancel_token)
    restaurant = get_restaurant(db, booking.restaurant_id)
    transition = change_status(db, booking, target)
    if transition.changed:
        notifications.notify_status_changed(
            dispatcher, signer, BookingSnapshot.of(booking), RestaurantSnapshot.of(restaurant)
        )
    return LinkOutcome(booking, restaurant, transition.changed)


def self_cancel(db: Session, cancel_token: str) -> LinkOutcome:
    """Client cancels from the emailed link; no signature, no email. Idempotent."""
    booking = get_booking_by_token(db, cancel_token)
    restaurant = get_restaurant(db, booking.restaurant_id)
    if booking.status in (CANCELLED, REFUSED):
        return LinkOutcome(booking, restaurant, False)
    transition = change_status(db, booking, CANCELLED)
    return LinkOutcome(booking, restaurant, transition.changed)


# --- Service desk ---


def mark_arrival(db: Session, booking: Booking) -> Booking:
    booking.arrival_time = _local_now().strftime(SERVICE_TIME_FORMAT)
    _commit(db)
    db.refresh(booking)
    return booking


def mark_bill_requested(db: Session, booking: Booking) -> Booking:
    booking.bill_requested = True
    _commit(db)
    db.refresh(booking)
    return booking


def mark_departure(db: Session, booking: Booking, bill_amount: float | None = None) -> Booking:
    booking.departure_time = _local_now().strftime(SERVICE_TIME_FORMAT)
    if bill_amount is not None:
        booking.bill_amount = bill_amount
        if bill_amount > 0:
            client_service.record_visit_spend(db, booking.restaurant_id, booking, bill_amount)
    _commit(db)
    db.refresh(booking)
    return booking


def assign_table(db: Session, booking: Booking, table_id: str | None, zone_id: str | None) -> Booking:
    if booking.departure_time:
        raise ValidationFailed(MSG_ALREADY_LEFT)
    booking.table_id = table_id or None
    booking.zone_id = zone_id or None
    _commit(db)
    db.refresh(booking)
    return booking


def booking_to_dict(b: Booking) -> dict[str, Any]:
    return {
        "id": b.id,
        "restaurantId": b.restaurant_id,
        "date": b.date,
        "time": b.time,
        "guests": b.guests,
        "children": b.children,
        "firstName": b.first_name,
        "lastName": b.last_name,
        "email": b.email,
        "phone": b.phone,
        "specialRequest": b.special_request,
        "newsletter": b.newsletter,
        "status": b.status,
        "cancelToken": b.cancel_token,
        "clientIp": b.client_ip,
        "clientId": b.client_id,
        "source": booking_source(b),
        "tableId": b.table_id,
        "zoneId": b.zone_id,
        "arrivalTime": b.arrival_time,
        "departureTime": b.departure_time,
        "billRequested": b.bill_requested,
        "billAmount": b.bill_amount,
        "version": b.version,
        "createdAt": b.created_at.isoformat() if b.created_at else None,
    }
