from datetime import date

import pytest

from everest.app.core.errors import BookingValidationError
from everest.app.routers.schemas import BookingRequest
from everest.app.services.hours import (
    CLOSED_DAY_MESSAGE,
    OUTSIDE_HOURS_MESSAGE,
    HoursGate,
    ServiceWindow,
    is_bookable,
)


def _booking(time: str, day: date = date(2099, 1, 1)) -> BookingRequest:
    return BookingRequest(
        name="John Doe",
        email="a@b.com",
        phone="+16135551234",
        date=day,
        time=time,
        party_size=2,
    )


@pytest.mark.parametrize(
    "time, expected",
    [
        ("11:29", False),
        ("11:30", True),
        ("12:45", True),
        ("14:00", True),
        ("14:01", False),
        ("16:59", False),
        ("17:00", True),
        ("19:30", True),
        ("22:30", True),
        ("22:31", False),
        ("03:00", False),
        ("00:00", False),
        ("9:15", False),
    ],
)
def test_is_bookable(time, expected):
    assert is_bookable(time) is expected


def test_every_dinner_minute_is_bookable():
    for minute in range(17 * 60, 22 * 60 + 31):
        assert is_bookable(f"{minute // 60:02d}:{minute % 60:02d}")


def test_custom_windows():
    brunch = ServiceWindow("brunch", "9:00", "10:00")
    assert is_bookable("9:30", [brunch])
    assert not is_bookable("12:00", [brunch])


def test_gate_rejects_time_outside_service():
    with pytest.raises(BookingValidationError) as excinfo:
        HoursGate().check(_booking("03:00"))
    assert excinfo.value.message == OUTSIDE_HOURS_MESSAGE


def test_gate_ignores_weekday_by_default():
    monday = date(2099, 1, 5)
    assert monday.weekday() == 0
    HoursGate().check(_booking("18:00", monday))


def test_gate_rejects_configured_closed_day():
    monday = date(2099, 1, 5)
    gate = HoursGate(closed_weekdays=[0])
    with pytest.raises(BookingValidationError) as excinfo:
        gate.check(_booking("18:00", monday))
    assert excinfo.value.message == CLOSED_DAY_MESSAGE

    gate.check(_booking("18:00", date(2099, 1, 6)))
