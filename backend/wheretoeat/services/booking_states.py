"""
Booking state machine: valid statuses and the transitions staff (or signed email links) may apply.

pending is only ever an initial status (online request that fits capacity). refused, cancelled
and noshow are terminal. Requesting the current status again is a no-op, not an error, so a
double-clicked email link does not resend anything.
"""
from dataclasses import dataclass

from wheretoeat.core.errors import ValidationFailed

PENDING = "pending"
WAITING = "waiting"
CONFIRMED = "confirmed"
REFUSED = "refused"
CANCELLED = "cancelled"
NOSHOW = "noshow"

ALL_STATUSES = (PENDING, WAITING, CONFIRMED, REFUSED, CANCELLED, NOSHOW)

# Counted by the capacity ledger; waiting entries are demand not yet granted a seat
COMMITTED_STATUSES = (PENDING, CONFIRMED)
ACTIVE_STATUSES = frozenset({PENDING, WAITING, CONFIRMED})
TERMINAL_STATUSES = frozenset({REFUSED, CANCELLED, NOSHOW})

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({CONFIRMED, WAITING, REFUSED, CANCELLED}),
    WAITING: frozenset({CONFIRMED, REFUSED, CANCELLED}),
    CONFIRMED: frozenset({WAITING, CANCELLED, NOSHOW}),
    REFUSED: frozenset(),
    CANCELLED: frozenset(),
    NOSHOW: frozenset(),
}

STATUS_LABELS = {
    PENDING: "En attente de confirmation",
    WAITING: "Liste d'attente",
    CONFIRMED: "Confirmée",
    REFUSED: "Refusée",
    CANCELLED: "Annulée",
    NOSHOW: "Absent",
}


class InvalidTransition(ValidationFailed):
    default_message = "Changement de statut impossible"


@dataclass(frozen=True)
class Transition:
    previous: str
    target: str

    @property
    def changed(self) -> bool:
        return self.previous != self.target


def is_valid_status(status: str | None) -> bool:
    return status in ALL_STATUSES


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def plan_transition(current: str, target: str) -> Transition:
    """
    Validate moving a booking from current to target.
    Returns a Transition (changed=False for a repeat); raises InvalidTransition otherwise.
    """
    if not is_valid_status(target):
        raise ValidationFailed("Statut invalide")
    if current == target:
        return Transition(current, target)
    if target == CONFIRMED and current in TERMINAL_STATUSES:
        raise InvalidTransition(
            f"Cette réservation est {status_label(current).lower()} et ne peut plus être confirmée."
        )
    if target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Impossible de passer de « {status_label(current)} » à « {status_label(target)} »."
        )
    return Transition(current, target)
