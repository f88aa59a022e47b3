import re

import pytest

from conftest import (
    MONDAY,
    auth_headers,
    booking_payload,
    make_booking,
    make_restaurant,
    make_user,
    post_booking,
)
from wheretoeat.core.errors import Conflict
from wheretoeat.db.session import SessionLocal
from wheretoeat.models import Booking, Client, ClosedDay
from wheretoeat.services import booking_service
from wheretoeat.services.opening_hours import MSG_DATE_CLOSED, MSG_OUTSIDE_HOURS

HH_MM = re.compile(r"^\d{2}:\d{2}$")


def _bookings(db):
    db.expire_all()
    return db.query(Booking).order_by(Booking.id).all()


# --- Public submission ---


def test_public_booking_fits_capacity_is_pending(client, db, restaurant, sent_emails):
    r = post_booking(client, booking_payload(restaurant))
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "pending"
    assert body["source"] == "online"
    assert body["email"] == "marie@example.com"
    assert len(body["cancelToken"]) == 32
    assert body["clientIp"] == "198.51.100.7"
    assert body["clientId"].startswith("client_")
    assert "clientId" in r.cookies

    recipients = [to for to, _, _ in sent_emails]
    assert recipients == ["marie@example.com", "resto@example.com"]
    assert sent_emails[0][1] == "Réservation en attente - Chez Luc"


def test_public_booking_over_ceiling_goes_to_waiting(client, db, restaurant, sent_emails):
    make_booking(db, restaurant, guests=38, status="pending")
    r = post_booking(client, booking_payload(restaurant, guests=4))
    assert r.status_code == 201
    assert r.json()["status"] == "waiting"
    assert sent_emails[0][1] == "Liste d'attente - Chez Luc"


def test_children_count_toward_capacity(client, db, restaurant):
    make_booking(db, restaurant, guests=36, status="confirmed")
    r = post_booking(client, booking_payload(restaurant, guests=3, children=2))
    assert r.json()["status"] == "waiting"


def test_waiting_entries_do_not_block_admission(client, db, restaurant):
    make_booking(db, restaurant, guests=40, status="waiting")
    r = post_booking(client, booking_payload(restaurant, guests=4))
    assert r.json()["status"] == "pending"


def test_online_capacity_is_the_public_ceiling(client, db, owner):
    restaurant = make_restaurant(db, owner, capacity=40, online_capacity=6)
    r = post_booking(client, booking_payload(restaurant, guests=7))
    assert r.status_code == 201
    assert r.json()["status"] == "waiting"


def test_closed_date_rejected(client, db, restaurant):
    db.add(ClosedDay(restaurant_id=restaurant.id, date="2030-12-25", reason="Noël"))
    db.commit()
    r = post_booking(client, booking_payload(restaurant, date="2030-12-25"))
    assert r.status_code == 400
    assert r.json() == {"message": MSG_DATE_CLOSED}
    assert _bookings(db) == []


def test_opening_hours_boundaries(client, db, owner):
    hours = {"Lundi": {"isOpen": True, "openTime1": "12:00", "closeTime1": "14:00", "hasSecondService": False}}
    restaurant = make_restaurant(db, owner, opening_hours=hours)
    r = post_booking(client, booking_payload(restaurant, time="14:00"))
    assert r.status_code == 400
    assert r.json()["message"] == MSG_OUTSIDE_HOURS
    r = post_booking(client, booking_payload(restaurant, time="12:00"))
    assert r.status_code == 201


def test_invalid_body_is_400_with_message(client, restaurant):
    r = post_booking(client, booking_payload(restaurant, guests=0))
    assert r.status_code == 400
    assert "guests" in r.json()["message"]
    r = post_booking(client, booking_payload(restaurant, time="7pm"))
    assert r.status_code == 400
    r = post_booking(client, booking_payload(restaurant, email="not-an-email"))
    assert r.status_code == 400


def test_unknown_restaurant_is_404(client, restaurant):
    r = post_booking(client, booking_payload(restaurant, restaurantId=9999))
    assert r.status_code == 404


def test_same_ip_with_another_email_is_refused(client, db, restaurant):
    assert post_booking(client, booking_payload(restaurant), ip="203.0.113.5").status_code == 201
    r = post_booking(client, booking_payload(restaurant, email="other@example.com", time="20:00"), ip="203.0.113.5")
    assert r.status_code == 400
    assert "email" in r.json()["message"]


def test_same_device_cookie_with_another_email_is_refused(client, restaurant):
    first = client.post("/api/bookings", json=booking_payload(restaurant), headers={"X-Forwarded-For": "203.0.113.6"})
    assert first.status_code == 201
    r = client.post(
        "/api/bookings",
        json=booking_payload(restaurant, email="other@example.com", time="20:00"),
        headers={"X-Forwarded-For": "203.0.113.7"},
    )
    assert r.status_code == 400


def test_same_ip_same_slot_is_refused(client, restaurant):
    assert post_booking(client, booking_payload(restaurant), ip="203.0.113.8").status_code == 201
    r = post_booking(client, booking_payload(restaurant), ip="203.0.113.8")
    assert r.status_code == 400
    assert "créneau" in r.json()["message"]


def test_public_booking_upserts_client_directory(client, db, restaurant):
    post_booking(client, booking_payload(restaurant), ip="203.0.113.9")
    post_booking(client, booking_payload(restaurant, time="20:00", phone="+41791234567"), ip="203.0.113.9")
    db.expire_all()
    clients = db.query(Client).filter(Client.restaurant_id == restaurant.id).all()
    assert len(clients) == 1
    assert clients[0].email == "marie@example.com"


# --- Staff entry and listing ---


def test_staff_booking_requires_auth(client, restaurant):
    r = client.post("/api/bookings/owner", json=booking_payload(restaurant))
    assert r.status_code == 401
    assert r.json()["message"]


def test_staff_booking_requires_ownership(client, db, restaurant):
    stranger = make_user(db, email="stranger@example.com")
    r = client.post("/api/bookings/owner", json=booking_payload(restaurant), headers=auth_headers(stranger))
    assert r.status_code == 403


def test_staff_booking_defaults_to_confirmed_without_email(client, db, owner, restaurant, sent_emails):
    r = client.post("/api/bookings/owner", json=booking_payload(restaurant), headers=auth_headers(owner))
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "confirmed"
    assert body["source"] == "staff"
    assert body["clientIp"] == "owner-created"
    assert body["clientId"].startswith(f"owner_{owner.id}_")
    assert sent_emails == []


def test_staff_booking_checks_total_capacity(client, db, owner):
    restaurant = make_restaurant(db, owner, capacity=10, online_capacity=2)
    make_booking(db, restaurant, guests=8, status="confirmed")
    ok = client.post("/api/bookings/owner", json=booking_payload(restaurant, guests=2), headers=auth_headers(owner))
    assert ok.json()["status"] == "confirmed"
    over = client.post("/api/bookings/owner", json=booking_payload(restaurant, guests=1), headers=auth_headers(owner))
    assert over.json()["status"] == "waiting"


def test_staff_explicit_status_bypasses_capacity(client, db, owner):
    restaurant = make_restaurant(db, owner, capacity=4)
    r = client.post(
        "/api/bookings/owner",
        json=booking_payload(restaurant, guests=12, status="confirmed", tableId="T4"),
        headers=auth_headers(owner),
    )
    assert r.status_code == 201
    assert r.json()["status"] == "confirmed"
    assert r.json()["tableId"] == "T4"


def test_staff_booking_skips_opening_hours_but_not_closed_dates(client, db, owner):
    hours = {"Lundi": {"isOpen": False}}
    restaurant = make_restaurant(db, owner, opening_hours=hours)
    r = client.post("/api/bookings/owner", json=booking_payload(restaurant), headers=auth_headers(owner))
    assert r.status_code == 201
    db.add(ClosedDay(restaurant_id=restaurant.id, date="2030-12-24"))
    db.commit()
    r = client.post(
        "/api/bookings/owner", json=booking_payload(restaurant, date="2030-12-24"), headers=auth_headers(owner)
    )
    assert r.status_code == 400


def test_staff_booking_rejects_unknown_status(client, owner, restaurant):
    r = client.post(
        "/api/bookings/owner", json=booking_payload(restaurant, status="maybe"), headers=auth_headers(owner)
    )
    assert r.status_code == 400


def test_list_bookings_with_source_filter(client, db, owner, restaurant):
    make_booking(db, restaurant, client_ip="203.0.113.1", client_id="client_1")
    make_booking(db, restaurant, client_ip="owner-created", client_id=f"owner_{owner.id}_1", time="20:00")
    headers = auth_headers(owner)

    everything = client.get(f"/api/bookings/restaurant/{restaurant.id}", headers=headers)
    assert everything.status_code == 200
    assert len(everything.json()) == 2

    online = client.get(f"/api/bookings/restaurant/{restaurant.id}", params={"source": "online"}, headers=headers)
    assert [b["source"] for b in online.json()] == ["online"]
    staff = client.get(f"/api/bookings/restaurant/{restaurant.id}", params={"source": "staff"}, headers=headers)
    assert [b["source"] for b in staff.json()] == ["staff"]


def test_list_bookings_requires_ownership(client, db, restaurant):
    stranger = make_user(db, email="stranger@example.com")
    r = client.get(f"/api/bookings/restaurant/{restaurant.id}", headers=auth_headers(stranger))
    assert r.status_code == 403


# --- Status transitions ---


def test_confirm_sends_client_email(client, db, owner, restaurant, sent_emails):
    booking = make_booking(db, restaurant)
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=auth_headers(owner))
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "confirmed"
    assert body["unchanged"] is False
    assert body["version"] == 2
    assert [(to, subject) for to, subject, _ in sent_emails] == [
        ("anne@example.com", "Votre réservation est confirmée - Chez Luc")
    ]


def test_repeated_status_is_a_noop(client, db, owner, restaurant, sent_emails):
    booking = make_booking(db, restaurant, status="confirmed")
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=auth_headers(owner))
    assert r.status_code == 200
    assert r.json()["unchanged"] is True
    assert r.json()["version"] == 1
    assert sent_emails == []


def test_noshow_sends_nothing(client, db, owner, restaurant, sent_emails):
    booking = make_booking(db, restaurant, status="confirmed")
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "noshow"}, headers=auth_headers(owner))
    assert r.status_code == 200
    assert r.json()["status"] == "noshow"
    assert sent_emails == []


def test_confirm_from_terminal_state_is_rejected(client, db, owner, restaurant):
    booking = make_booking(db, restaurant, status="cancelled")
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=auth_headers(owner))
    assert r.status_code == 400
    assert _bookings(db)[0].status == "cancelled"


def test_invalid_status_value(client, db, owner, restaurant):
    booking = make_booking(db, restaurant)
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "done"}, headers=auth_headers(owner))
    assert r.status_code == 400
    assert r.json() == {"message": "Statut invalide"}


def test_stale_version_is_a_conflict(client, db, owner, restaurant, sent_emails):
    booking = make_booking(db, restaurant)
    r = client.patch(
        f"/api/bookings/{booking.id}/status",
        json={"status": "refused", "version": 7},
        headers=auth_headers(owner),
    )
    assert r.status_code == 409
    assert _bookings(db)[0].status == "pending"
    assert sent_emails == []


def _concurrent_cancel(booking_id):
    """Another writer cancels the booking through its own session."""
    other = SessionLocal()
    try:
        other.query(Booking).filter(Booking.id == booking_id).update(
            {"status": "cancelled", "version": Booking.version + 1}, synchronize_session=False
        )
        other.commit()
    finally:
        other.close()


def test_write_over_a_concurrent_change_is_a_conflict(db, restaurant):
    booking = make_booking(db, restaurant)
    _concurrent_cancel(booking.id)
    with pytest.raises(Conflict):
        booking_service.change_status(db, booking, "confirmed")
    db.expire_all()
    assert db.get(Booking, booking.id).status == "cancelled"


def test_status_patch_racing_another_writer_is_a_conflict(client, db, owner, restaurant, sent_emails, monkeypatch):
    booking = make_booking(db, restaurant)
    real_plan = booking_service.plan_transition

    def plan_after_concurrent_write(current, target):
        _concurrent_cancel(booking.id)
        return real_plan(current, target)

    monkeypatch.setattr(booking_service, "plan_transition", plan_after_concurrent_write)
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=auth_headers(owner))
    assert r.status_code == 409
    db.expire_all()
    assert db.get(Booking, booking.id).status == "cancelled"
    assert sent_emails == []


def test_status_change_requires_ownership_and_existence(client, db, owner, restaurant):
    booking = make_booking(db, restaurant)
    stranger = make_user(db, email="stranger@example.com")
    r = client.patch(f"/api/bookings/{booking.id}/status", json={"status": "confirmed"}, headers=auth_headers(stranger))
    assert r.status_code == 403
    r = client.patch("/api/bookings/9999/status", json={"status": "confirmed"}, headers=auth_headers(owner))
    assert r.status_code == 404


# --- Service desk ---


def test_arrival_and_bill_requested(client, db, owner, restaurant):
    booking = make_booking(db, restaurant, status="confirmed")
    headers = auth_headers(owner)
    r = client.patch(f"/api/bookings/{booking.id}/arrival", headers=headers)
    assert r.status_code == 200
    assert HH_MM.match(r.json()["arrivalTime"])
    r = client.patch(f"/api/bookings/{booking.id}/bill-requested", headers=headers)
    assert r.json()["billRequested"] is True
    assert r.json()["status"] == "confirmed"


def test_departure_records_spend_on_client(client, db, owner, restaurant):
    post = client.post(
        "/api/bookings/owner", json=booking_payload(restaurant), headers=auth_headers(owner)
    )
    booking_id = post.json()["id"]
    r = client.patch(f"/api/bookings/{booking_id}/departure", json={"billAmount": 125.5}, headers=auth_headers(owner))
    assert r.status_code == 200
    assert HH_MM.match(r.json()["departureTime"])
    assert r.json()["billAmount"] == 125.5
    db.expire_all()
    entry = db.query(Client).filter(Client.restaurant_id == restaurant.id).one()
    assert entry.total_spent == 125.5
    assert entry.visit_count == 1


def test_departure_without_amount(client, db, owner, restaurant):
    booking = make_booking(db, restaurant, status="confirmed")
    r = client.patch(f"/api/bookings/{booking.id}/departure", json={"billAmount": ""}, headers=auth_headers(owner))
    assert r.status_code == 200
    assert r.json()["billAmount"] is None
    r = client.patch(f"/api/bookings/{booking.id}/departure", headers=auth_headers(owner))
    assert r.status_code == 200


def test_negative_bill_amount_rejected(client, db, owner, restaurant):
    booking = make_booking(db, restaurant, status="confirmed")
    r = client.patch(f"/api/bookings/{booking.id}/departure", json={"billAmount": -3}, headers=auth_headers(owner))
    assert r.status_code == 400


def test_non_finite_bill_amount_rejected(client, db, owner, restaurant):
    booking = make_booking(db, restaurant, status="confirmed")
    for amount in ("inf", "-inf", "nan"):
        r = client.patch(f"/api/bookings/{booking.id}/departure", json={"billAmount": amount}, headers=auth_headers(owner))
        assert r.status_code == 400
    db.expire_all()
    assert db.get(Booking, booking.id).bill_amount is None


def test_table_assignment_until_departure(client, db, owner, restaurant):
    booking = make_booking(db, restaurant, status="confirmed")
    headers = auth_headers(owner)
    r = client.patch(f"/api/bookings/{booking.id}/table", json={"tableId": "T2", "zoneId": "terrasse"}, headers=headers)
    assert r.status_code == 200
    assert (r.json()["tableId"], r.json()["zoneId"]) == ("T2", "terrasse")
    client.patch(f"/api/bookings/{booking.id}/departure", headers=headers)
    r = client.patch(f"/api/bookings/{booking.id}/table", json={"tableId": "T5"}, headers=headers)
    assert r.status_code == 400
    assert _bookings(db)[0].table_id == "T2"


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_monday_fixture_date():
    from datetime import date

    assert date.fromisoformat(MONDAY).weekday() == 0
