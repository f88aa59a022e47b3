"""
Centralized error handling for API and link-driven endpoints.
Exception classes carry their HTTP status and a user-facing message so routes and services stay thin;
main.py turns them into JSON, link endpoints render them as HTML status pages.
"""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

STATUS_BAD_REQUEST = 400
STATUS_UNAUTHORIZED = 401
STATUS_FORBIDDEN = 403
STATUS_NOT_FOUND = 404
STATUS_CONFLICT = 409
STATUS_INTERNAL_ERROR = 500

MSG_SERVER_ERROR = "Erreur serveur"
MSG_NOT_AUTHENTICATED = "Non autorisé"
MSG_NOT_OWNER = "Non autorisé pour ce restaurant"
MSG_BAD_SIGNATURE = "Lien invalide ou expiré : la signature ne correspond pas."
MSG_BOOKING_CHANGED = "La réservation a été modifiée entre-temps. Rechargez et réessayez."


class AppError(Exception):
    status_code = STATUS_INTERNAL_ERROR
    default_message = MSG_SERVER_ERROR

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = STATUS_BAD_REQUEST
    default_message = "Requête invalide"


class NotAuthenticated(AppError):
    status_code = STATUS_UNAUTHORIZED
    default_message = MSG_NOT_AUTHENTICATED


class Forbidden(AppError):
    status_code = STATUS_FORBIDDEN
    default_message = MSG_NOT_OWNER


class InvalidSignature(Forbidden):
    default_message = MSG_BAD_SIGNATURE


class NotFound(AppError):
    status_code = STATUS_NOT_FOUND
    default_message = "Introuvable"


class Conflict(AppError):
    status_code = STATUS_CONFLICT
    default_message = MSG_BOOKING_CHANGED


# ---------------------------------------------------------------------------
# Handlers registered on the app (main.py)
# ---------------------------------------------------------------------------

def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        parts.append(f"{field}: {err.get('msg')}" if field else str(err.get("msg")))
    return "; ".join(parts) or "Requête invalide"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=STATUS_BAD_REQUEST, content={"message": _format_validation_errors(exc)})


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """5xx: log in full, never echo internals to the client."""
    logger.exception("Unhandled error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=STATUS_INTERNAL_ERROR, content={"message": MSG_SERVER_ERROR})


def register_error_handlers(app) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
