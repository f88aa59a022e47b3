"""
Password hashing (bcrypt) and session tokens (HS256 JWT signed with SESSION_SECRET).
"""
import logging
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt

from wheretoeat.config import settings

logger = logging.getLogger(__name__)

_JWT_ALGORITHM = "HS256"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def create_session_token(user_id: str, *, secret: str | None = None, ttl_days: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    days = ttl_days if ttl_days is not None else settings.session_ttl_days
    payload = {"sub": user_id, "iat": int(now.timestamp()), "exp": int((now + timedelta(days=days)).timestamp())}
    token = jwt.encode(payload, secret or settings.session_secret, algorithm=_JWT_ALGORITHM)
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return token


def decode_session_token(token: str, *, secret: str | None = None) -> str | None:
    """Return the user id carried by a valid, unexpired token; None otherwise."""
    try:
        payload = jwt.decode(token, secret or settings.session_secret, algorithms=[_JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug("Rejected session token: %s", e)
        return None
    sub = payload.get("sub")
    return sub if isinstance(sub, str) and sub else None
