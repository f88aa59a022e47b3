import os

# Settings are read at import time: point the app at in-memory SQLite and disable SMTP first.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SESSION_SECRET"] = "test-secret"
os.environ["PUBLIC_BASE_URL"] = "https://wheretoeat.test"
os.environ["SMTP_USER"] = ""
os.environ["SMTP_PASSWORD"] = ""

from concurrent.futures import Future

import pytest
from fastapi.testclient import TestClient

from wheretoeat.api.deps import get_action_signer, get_dispatcher
from wheretoeat.core.security import create_session_token
from wheretoeat.db.base import Base
from wheretoeat.db.session import SessionLocal, engine
from wheretoeat.main import app
from wheretoeat.models import Booking, Restaurant, User
from wheretoeat.services import email_notify
from wheretoeat.services.action_tokens import ActionSigner, new_cancel_token

TEST_SECRET = "test-secret"
TEST_BASE_URL = "https://wheretoeat.test"
# 2030-01-07 is a Monday
MONDAY = "2030-01-07"


class RecordingDispatcher:
    """Runs jobs inline and keeps the list of dispatched callables."""

    def __init__(self):
        self.jobs = []

    def dispatch(self, fn, *args, **kwargs):
        self.jobs.append((fn, args, kwargs))
        future = Future()
        future.set_result(fn(*args, **kwargs))
        return future

    def shutdown(self, wait=False):
        pass


@pytest.fixture(autouse=True)
def tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(tables):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sent_emails(monkeypatch):
    """Every email handed to SMTP, as (to, subject, html)."""
    sent = []

    def fake_send(to_email, subject, html):
        sent.append((to_email, subject, html))
        return True

    monkeypatch.setattr(email_notify, "send_email", fake_send)
    return sent


@pytest.fixture
def signer():
    return ActionSigner(TEST_SECRET, TEST_BASE_URL)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def client(dispatcher, signer, sent_emails):
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_action_signer] = lambda: signer
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_user(db, email="owner@example.com"):
    user = User(email=email, first_name="Luc", last_name="Martin")
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_restaurant(db, owner=None, **overrides):
    fields = {
        "name": "Chez Luc",
        "address": "Rue du Lac 1, Lausanne",
        "public_email": "resto@example.com",
        "capacity": 40,
        "online_capacity": None,
        "opening_hours": None,
        "approval_status": "approved",
    }
    fields.update(overrides)
    restaurant = Restaurant(owner_id=owner.id if owner else None, **fields)
    db.add(restaurant)
    db.commit()
    db.refresh(restaurant)
    return restaurant


def make_booking(db, restaurant, **overrides):
    fields = {
        "date": MONDAY,
        "time": "19:00",
        "guests": 2,
        "children": 0,
        "first_name": "Anne",
        "last_name": "Roux",
        "email": "anne@example.com",
        "phone": "+41 79 000 00 00",
        "status": "pending",
        "client_ip": "192.0.2.99",
        "client_id": "client_seed",
    }
    fields.update(overrides)
    booking = Booking(restaurant_id=restaurant.id, cancel_token=new_cancel_token(), **fields)
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def auth_headers(user):
    return {"Authorization": f"Bearer {create_session_token(user.id, secret=TEST_SECRET)}"}


def booking_payload(restaurant, **overrides):
    payload = {
        "restaurantId": restaurant.id,
        "date": MONDAY,
        "time": "19:00",
        "guests": 4,
        "children": 0,
        "firstName": "Marie",
        "lastName": "Dupont",
        "email": "marie@example.com",
        "phone": "+41 79 123 45 67",
        "newsletter": False,
    }
    payload.update(overrides)
    return payload


def post_booking(client, payload, ip="198.51.100.7"):
    """Public submission from a fresh browser (no clientId cookie) at the given IP."""
    client.cookies.clear()
    return client.post("/api/bookings", json=payload, headers={"X-Forwarded-For": ip})


@pytest.fixture
def owner(db):
    return make_user(db)


@pytest.fixture
def restaurant(db, owner):
    return make_restaurant(db, owner)
