"""
Opening-hours and closed-date checks for online submissions.

Windows are half-open: start <= time < end, compared as zero-padded HH:MM strings.
"""
from datetime import date as date_type

from sqlalchemy.orm import Session

from wheretoeat.core.errors import ValidationFailed
from wheretoeat.models.closed_day import ClosedDay
from wheretoeat.models.restaurant import Restaurant

# date.weekday(): Monday == 0
WEEKDAY_NAMES = ("Lundi", "Mardi", "Mercredi", "Jeudi", "Vendredi", "Samedi", "Dimanche")

MSG_DATE_CLOSED = "Les réservations ne sont pas disponibles pour cette date."
MSG_DAY_CLOSED = "Le restaurant est fermé ce jour-là."
MSG_OUTSIDE_HOURS = "L'heure de réservation est en dehors des horaires d'ouverture."


def in_window(time: str, start: str | None, end: str | None) -> bool:
    if not start or not end:
        return False
    return start <= time < end


def is_within_opening_hours(opening_hours: dict | None, day: date_type, time: str) -> bool:
    """True when time falls in the first window, or the second one if that service is enabled."""
    if not opening_hours:
        return True
    hours = opening_hours.get(WEEKDAY_NAMES[day.weekday()])
    if not hours or not hours.get("isOpen"):
        return False
    if in_window(time, hours.get("openTime1"), hours.get("closeTime1")):
        return True
    return bool(hours.get("hasSecondService")) and in_window(time, hours.get("openTime2"), hours.get("closeTime2"))


def is_date_closed(db: Session, restaurant_id: int, date: str) -> bool:
    return (
        db.query(ClosedDay.id)
        .filter(ClosedDay.restaurant_id == restaurant_id, ClosedDay.date == date)
        .first()
        is not None
    )


def ensure_bookable(db: Session, restaurant: Restaurant, day: date_type, time: str) -> None:
    """Raise ValidationFailed if the restaurant does not take online bookings at that date/time."""
    if is_date_closed(db, restaurant.id, day.isoformat()):
        raise ValidationFailed(MSG_DATE_CLOSED)
    if not restaurant.opening_hours:
        return
    hours = restaurant.opening_hours.get(WEEKDAY_NAMES[day.weekday()])
    if not hours or not hours.get("isOpen"):
        raise ValidationFailed(MSG_DAY_CLOSED)
    if not is_within_opening_hours(restaurant.opening_hours, day, time):
        raise ValidationFailed(MSG_OUTSIDE_HOURS)
