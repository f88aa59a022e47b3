from datetime import date

import pytest

from conftest import make_restaurant
from wheretoeat.core.errors import ValidationFailed
from wheretoeat.models.closed_day import ClosedDay
from wheretoeat.services.opening_hours import (
    MSG_DATE_CLOSED,
    MSG_DAY_CLOSED,
    MSG_OUTSIDE_HOURS,
    ensure_bookable,
    in_window,
    is_date_closed,
    is_within_opening_hours,
)

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

HOURS = {
    "Lundi": {
        "isOpen": True,
        "openTime1": "12:00",
        "closeTime1": "14:00",
        "hasSecondService": True,
        "openTime2": "19:00",
        "closeTime2": "22:00",
    },
    "Mardi": {"isOpen": False},
}


def test_window_is_half_open():
    assert in_window("12:00", "12:00", "14:00")
    assert in_window("13:59", "12:00", "14:00")
    assert not in_window("14:00", "12:00", "14:00")
    assert not in_window("11:59", "12:00", "14:00")


def test_window_needs_both_bounds():
    assert not in_window("12:00", None, "14:00")
    assert not in_window("12:00", "12:00", "")


@pytest.mark.parametrize(
    "time,expected",
    [("12:00", True), ("14:00", False), ("16:00", False), ("19:00", True), ("21:59", True), ("22:00", False)],
)
def test_two_services(time, expected):
    assert is_within_opening_hours(HOURS, MONDAY, time) is expected


def test_second_service_ignored_when_disabled():
    hours = {"Lundi": dict(HOURS["Lundi"], hasSecondService=False)}
    assert not is_within_opening_hours(hours, MONDAY, "19:30")


def test_closed_weekday_and_missing_weekday():
    assert not is_within_opening_hours(HOURS, TUESDAY, "12:30")
    assert not is_within_opening_hours(HOURS, date(2030, 1, 9), "12:30")


def test_no_configured_hours_means_always_open():
    assert is_within_opening_hours(None, MONDAY, "03:00")
    assert is_within_opening_hours({}, MONDAY, "03:00")


def test_closed_date(db, restaurant):
    db.add(ClosedDay(restaurant_id=restaurant.id, date="2030-12-25"))
    db.commit()
    assert is_date_closed(db, restaurant.id, "2030-12-25")
    assert not is_date_closed(db, restaurant.id, "2030-12-26")
    with pytest.raises(ValidationFailed) as exc:
        ensure_bookable(db, restaurant, date(2030, 12, 25), "19:00")
    assert exc.value.message == MSG_DATE_CLOSED


def test_ensure_bookable_messages(db, owner):
    restaurant = make_restaurant(db, owner, opening_hours=HOURS)
    ensure_bookable(db, restaurant, MONDAY, "12:00")
    with pytest.raises(ValidationFailed) as exc:
        ensure_bookable(db, restaurant, TUESDAY, "12:00")
    assert exc.value.message == MSG_DAY_CLOSED
    with pytest.raises(ValidationFailed) as exc:
        ensure_bookable(db, restaurant, MONDAY, "14:00")
    assert exc.value.message == MSG_OUTSIDE_HOURS
