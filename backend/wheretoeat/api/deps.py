"""
Shared FastAPI dependencies: current user, notification dispatcher, action-link signer, client IP.
"""
from functools import lru_cache

from fastapi import Header, Request

from wheretoeat.config import settings
from wheretoeat.core.constants import SESSION_COOKIE_NAME
from wheretoeat.core.errors import NotAuthenticated
from wheretoeat.core.security import decode_session_token
from wheretoeat.services import notifications
from wheretoeat.services.action_tokens import ActionSigner
from wheretoeat.services.notifications import NotificationDispatcher


def get_current_user_id(
    request: Request,
    authorization: str | None = Header(None),
) -> str:
    """User id from the session cookie or an Authorization: Bearer header; 401 otherwise."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    user_id = decode_session_token(token) if token else None
    if not user_id:
        raise NotAuthenticated()
    return user_id


def get_dispatcher() -> NotificationDispatcher:
    return notifications.dispatcher


@lru_cache(maxsize=1)
def get_action_signer() -> ActionSigner:
    return ActionSigner(settings.session_secret, settings.public_base_url)


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else the socket address."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else "unknown"
