"""
Signed one-click links for booking emails.

Every booking has a cancel token: a random capability reference to that booking. The client's
self-cancel link carries the bare token. Restaurant action links (confirm / refuse / waiting) add
sig = HMAC-SHA256(secret, "<token>:<action>") so a link cannot be forged, and a signature for one
action cannot be replayed for another.
"""
import hashlib
import hmac
import secrets

from wheretoeat.core.constants import CANCEL_TOKEN_BYTES


def new_cancel_token() -> str:
    return secrets.token_urlsafe(CANCEL_TOKEN_BYTES)


class ActionSigner:
    """Signs and verifies action links. The secret is injected once (from settings) at construction."""

    __slots__ = ("_secret", "base_url")

    def __init__(self, secret: str, base_url: str) -> None:
        if not secret:
            raise ValueError("A signing secret is required for action links")
        self._secret = secret.encode("utf-8")
        self.base_url = base_url.rstrip("/")

    def sign(self, cancel_token: str, action: str) -> str:
        message = f"{cancel_token}:{action}".encode("utf-8")
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def verify(self, cancel_token: str, action: str, sig: str | None) -> bool:
        if not sig:
            return False
        return hmac.compare_digest(self.sign(cancel_token, action), sig)

    def action_url(self, cancel_token: str, action: str) -> str:
        return f"{self.base_url}/api/bookings/action/{cancel_token}/{action}?sig={self.sign(cancel_token, action)}"

    def cancel_url(self, cancel_token: str) -> str:
        return f"{self.base_url}/api/bookings/cancel/{cancel_token}"

    def restaurant_url(self, restaurant_id: int) -> str:
        return f"{self.base_url}/restaurant/{restaurant_id}"
