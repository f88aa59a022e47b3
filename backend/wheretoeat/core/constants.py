"""
Centralized constants for bookings, scheduler and cookies (Encapsulate What Changes).

Change job IDs, cookie names or provenance markers here instead of scattering literals across routes.
"""

# Scheduler job IDs (must match ids used in main.py add_job)
BOOKING_REMINDER_JOB_ID = "booking_reminders"

# Cookies
SESSION_COOKIE_NAME = "session"
CLIENT_ID_COOKIE_NAME = "clientId"
CLIENT_ID_COOKIE_MAX_AGE = 365 * 24 * 60 * 60  # one year, seconds

# Provenance markers on staff-entered bookings (public bookings carry the real IP / clientId cookie)
OWNER_CREATED_IP = "owner-created"
OWNER_CLIENT_ID_PREFIX = "owner_"

# Anti-fraud window: one device/IP may not book under two emails within this many hours
FRAUD_WINDOW_HOURS = 24

# Length of the capability token embedded in cancel/action links
CANCEL_TOKEN_BYTES = 24  # token_urlsafe(24) -> 32 characters

# Email link actions and the status each one moves the booking to
LINK_ACTIONS = {
    "confirm": "confirmed",
    "refuse": "refused",
    "waiting": "waiting",
}

# Guest bounds accepted on submission
MAX_PARTY_SIZE = 50

# Timestamps written by service-desk actions
SERVICE_TIME_FORMAT = "%H:%M"
