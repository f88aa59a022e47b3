"""Runs daily (REMINDER_HOUR:REMINDER_MINUTE): email every client whose booking is tomorrow."""
import logging
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from wheretoeat.config import settings
from wheretoeat.db.session import SessionLocal
from wheretoeat.models.booking import Booking
from wheretoeat.models.restaurant import Restaurant
from wheretoeat.services import email_templates, notifications
from wheretoeat.services.action_tokens import ActionSigner
from wheretoeat.services.booking_states import CANCELLED, NOSHOW
from wheretoeat.services.email_templates import BookingSnapshot, RestaurantSnapshot

logger = logging.getLogger(__name__)

SKIPPED_STATUSES = (CANCELLED, NOSHOW)


def _today() -> date:
    return datetime.now(ZoneInfo(settings.app_timezone)).date()


def send_booking_reminders(db: Session, signer: ActionSigner, today: date | None = None) -> int:
    """Send one reminder per booking dated tomorrow. A failed booking is logged and skipped. Returns sent count."""
    tomorrow = ((today or _today()) + timedelta(days=1)).isoformat()
    rows = (
        db.query(Booking, Restaurant)
        .join(Restaurant, Restaurant.id == Booking.restaurant_id)
        .filter(Booking.date == tomorrow, Booking.status.notin_(SKIPPED_STATUSES))
        .order_by(Booking.time.asc(), Booking.id.asc())
        .all()
    )
    sent = 0
    for booking, restaurant in rows:
        try:
            if notifications.deliver(
                email_templates.booking_reminder,
                BookingSnapshot.of(booking),
                RestaurantSnapshot.of(restaurant),
                signer,
            ):
                sent += 1
        except Exception as e:
            logger.warning("Reminder for booking %s failed: %s", booking.id, e, exc_info=True)
    logger.info("Booking reminders for %s: %s/%s sent", tomorrow, sent, len(rows))
    return sent


def run_booking_reminders_job() -> None:
    db = SessionLocal()
    try:
        send_booking_reminders(db, ActionSigner(settings.session_secret, settings.public_base_url))
    finally:
        db.close()
