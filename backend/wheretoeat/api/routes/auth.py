"""
Auth API for restaurateurs: register, login, logout, current user.

Sessions are HS256 JWTs carried in an httpOnly "session" cookie; the token is also returned in the
body for clients that prefer an Authorization: Bearer header.
"""
import logging
from typing import Any

from fastapi import APIRouter, Depends, Response
from pydantic import EmailStr, Field
from sqlalchemy.orm import Session

from wheretoeat.api.deps import get_current_user_id
from wheretoeat.api.schemas import CamelModel
from wheretoeat.config import settings
from wheretoeat.core.constants import SESSION_COOKIE_NAME
from wheretoeat.core.errors import NotAuthenticated, ValidationFailed
from wheretoeat.core.security import create_session_token, hash_password, verify_password
from wheretoeat.db.session import get_db
from wheretoeat.models.user import User

router = APIRouter()
logger = logging.getLogger(__name__)

MSG_EMAIL_TAKEN = "Un compte existe déjà avec cet email"
MSG_BAD_CREDENTIALS = "Email ou mot de passe incorrect"


class RegisterBody(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str | None = Field(None, max_length=120)
    last_name: str | None = Field(None, max_length=120)


class LoginBody(CamelModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


def _user_to_dict(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "isAdmin": user.is_admin,
    }


def _start_session(response: Response, user: User) -> dict[str, Any]:
    token = create_session_token(user.id)
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        max_age=settings.session_ttl_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
    return {"user": _user_to_dict(user), "token": token}


@router.post("/register", status_code=201)
def register(body: RegisterBody, response: Response, db: Session = Depends(get_db)) -> dict[str, Any]:
    email = str(body.email).lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise ValidationFailed(MSG_EMAIL_TAKEN)
    user = User(
        email=email,
        password_hash=hash_password(body.password),
        first_name=body.first_name,
        last_name=body.last_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return _start_session(response, user)


@router.post("/login")
def login(body: LoginBody, response: Response, db: Session = Depends(get_db)) -> dict[str, Any]:
    user = db.query(User).filter(User.email == str(body.email).lower()).one_or_none()
    if user is None or not verify_password(body.password, user.password_hash):
        raise NotAuthenticated(MSG_BAD_CREDENTIALS)
    return _start_session(response, user)


@router.post("/logout")
def logout(response: Response) -> dict[str, bool]:
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"ok": True}


@router.get("/user")
def current_user(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict[str, Any]:
    user = db.query(User).filter(User.id == user_id).one_or_none()
    if user is None:
        raise NotAuthenticated()
    return _user_to_dict(user)
