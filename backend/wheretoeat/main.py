"""
FastAPI app entrypoint.

Booking core: public submission, staff dashboard API, email action links, daily reminders.
"""
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from wheretoeat.api.routes import auth, bookings, closed_days, public, restaurants
from wheretoeat.config import settings
from wheretoeat.core.constants import BOOKING_REMINDER_JOB_ID
from wheretoeat.core.errors import register_error_handlers
from wheretoeat.scheduler.reminder_job import run_booking_reminders_job
from wheretoeat.services.notifications import dispatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Scheduler: booking reminders once a day, local restaurant time
_scheduler = BackgroundScheduler(timezone=settings.app_timezone)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _scheduler.add_job(
        run_booking_reminders_job,
        "cron",
        hour=settings.reminder_hour,
        minute=settings.reminder_minute,
        id=BOOKING_REMINDER_JOB_ID,
        replace_existing=True,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler
    logger.info(
        "Reminder job scheduled daily at %02d:%02d (%s)",
        settings.reminder_hour, settings.reminder_minute, settings.app_timezone,
    )
    yield
    _scheduler.shutdown(wait=False)
    dispatcher.shutdown(wait=False)


app = FastAPI(title="WhereToEat", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the production frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        logger.info(
            "%s %s %s in %.0fms",
            request.method, request.url.path, response.status_code, (time.perf_counter() - start) * 1000,
        )
    return response


app.include_router(bookings.router, prefix="/api/bookings", tags=["bookings"])
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(restaurants.router, prefix="/api/restaurants", tags=["restaurants"])
app.include_router(public.router, prefix="/api/public", tags=["public"])
app.include_router(closed_days.router, prefix="/api/closed-days", tags=["closed-days"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "WhereToEat API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
