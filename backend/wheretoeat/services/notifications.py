"""
Notification dispatcher: booking emails are handed to a small thread pool and the request
returns without waiting. Delivery is best-effort: no retry, failures are logged and dropped.
"""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from wheretoeat.config import settings
from wheretoeat.services import email_notify, email_templates
from wheretoeat.services.action_tokens import ActionSigner
from wheretoeat.services.booking_states import CANCELLED, CONFIRMED, REFUSED, WAITING
from wheretoeat.services.email_templates import BookingSnapshot, EmailMessage, RestaurantSnapshot

logger = logging.getLogger(__name__)

Renderer = Callable[[BookingSnapshot, RestaurantSnapshot, ActionSigner], EmailMessage | None]

# Client email per status reached through a transition; noshow sends nothing
STATUS_TEMPLATES: dict[str, Renderer] = {
    CONFIRMED: email_templates.booking_confirmed,
    WAITING: email_templates.booking_waiting,
    REFUSED: email_templates.booking_cancelled,
    CANCELLED: email_templates.booking_cancelled,
}


class NotificationDispatcher:
    """Runs send jobs on a lazily created executor; dispatch() never blocks on delivery."""

    def __init__(self, max_workers: int = 2) -> None:
        self._max_workers = max_workers
        self._executor: ThreadPoolExecutor | None = None
        self._lock = threading.Lock()

    def _get_executor(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="notify",
                )
            return self._executor

    def dispatch(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        return self._get_executor().submit(self._run, fn, *args, **kwargs)

    @staticmethod
    def _run(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            logger.exception("Notification job %s failed: %s", getattr(fn, "__name__", fn), e)
            return None

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            if self._executor is not None:
                self._executor.shutdown(wait=wait)
                self._executor = None


dispatcher = NotificationDispatcher(max_workers=settings.notification_workers)


def deliver(render: Renderer, booking: BookingSnapshot, restaurant: RestaurantSnapshot, signer: ActionSigner) -> bool:
    """Render one template and send it. Returns True if sent."""
    message = render(booking, restaurant, signer)
    if message is None:
        return False
    return email_notify.send_email(message.to, message.subject, message.html)


def notify_booking_created(
    dispatcher: NotificationDispatcher,
    signer: ActionSigner,
    booking: BookingSnapshot,
    restaurant: RestaurantSnapshot,
) -> None:
    """Client acknowledgement (pending or waiting variant) plus the restaurant's action email."""
    dispatcher.dispatch(deliver, email_templates.booking_received, booking, restaurant, signer)
    dispatcher.dispatch(deliver, email_templates.new_booking_for_restaurant, booking, restaurant, signer)


def notify_status_changed(
    dispatcher: NotificationDispatcher,
    signer: ActionSigner,
    booking: BookingSnapshot,
    restaurant: RestaurantSnapshot,
) -> bool:
    """Queue the client email for the booking's new status. Returns False when that status has none."""
    render = STATUS_TEMPLATES.get(booking.status)
    if render is None:
        return False
    dispatcher.dispatch(deliver, render, booking, restaurant, signer)
    return True
