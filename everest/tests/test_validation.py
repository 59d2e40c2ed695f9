from datetime import date

import pytest

from everest.app.core.errors import BookingValidationError
from everest.app.services.validation import (
    BOOKING_RULES,
    INVALID_NAME_MESSAGE,
    INVALID_PAYLOAD_MESSAGE,
    is_suspicious_name,
    validate_booking,
)

TODAY = date(2026, 10, 19)


def _reject(payload, **kwargs) -> str:
    with pytest.raises(BookingValidationError) as excinfo:
        validate_booking(payload, today=TODAY, phone_region="CA", **kwargs)
    return excinfo.value.message


def test_valid_booking_returns_typed_request(valid_payload):
    valid_payload.update(occasion="birthday", notes="Window seat please")

    booking = validate_booking(valid_payload, today=TODAY, phone_region="CA")

    assert booking.name == "John Doe"
    assert booking.date == date(2099, 1, 1)
    assert booking.time == "12:00"
    assert booking.party_size == 2
    assert booking.occasion == "birthday"
    assert booking.notes == "Window seat please"


def test_booking_for_today_is_accepted(valid_payload):
    valid_payload["date"] = TODAY.isoformat()
    assert validate_booking(valid_payload, today=TODAY, phone_region="CA").date == TODAY


def test_national_phone_format_uses_region(valid_payload):
    valid_payload["phone"] = "(613) 555-1234"
    assert validate_booking(valid_payload, today=TODAY, phone_region="CA").phone == "(613) 555-1234"


def test_single_digit_hour_is_normalised(valid_payload):
    valid_payload["time"] = "9:05"
    assert validate_booking(valid_payload, today=TODAY, phone_region="CA").time == "09:05"


@pytest.mark.parametrize("payload", [None, [], "booking", 42])
def test_non_object_payload_rejected(payload):
    assert _reject(payload) == INVALID_PAYLOAD_MESSAGE


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("partySize", 0, "Party size must be at least 1"),
        ("partySize", -3, "Party size must be at least 1"),
        ("partySize", 21, "Party size must be at most 20"),
        ("partySize", 2.5, "Party size must be a whole number"),
        ("partySize", "2", "Party size must be a whole number"),
        ("partySize", True, "Party size must be a whole number"),
        ("date", "2000-01-01", "Booking date must be today or in the future"),
        ("date", "2026-10-18", "Booking date must be today or in the future"),
        ("date", "01/01/2099", "Invalid date format"),
        ("date", "2099-02-30", "Invalid date format"),
        ("time", "24:00", "Invalid time format"),
        ("time", "12:60", "Invalid time format"),
        ("time", "noon", "Invalid time format"),
        ("time", "12:00:00", "Invalid time format"),
        ("email", "not-an-email", "Invalid email"),
        ("phone", "12345", "Invalid phone number"),
        ("name", "J" * 101, "Name must be at most 100 characters"),
        ("notes", "x" * 501, "Notes must be at most 500 characters"),
        ("occasion", 7, "Occasion must be text"),
    ],
)
def test_field_rules_report_specific_message(valid_payload, field, value, message):
    valid_payload[field] = value
    assert _reject(valid_payload) == message


def test_party_size_boundaries_accepted(valid_payload):
    for size in (1, 20):
        valid_payload["partySize"] = size
        assert validate_booking(valid_payload, today=TODAY, phone_region="CA").party_size == size


def test_notes_at_limit_accepted(valid_payload):
    valid_payload["notes"] = "x" * 500
    assert validate_booking(valid_payload, today=TODAY, phone_region="CA").notes == "x" * 500


@pytest.mark.parametrize(
    "field, message",
    [
        ("name", "Name is required"),
        ("email", "Email is required"),
        ("phone", "Phone number is required"),
        ("date", "Date is required"),
        ("time", "Time is required"),
        ("partySize", "Party size is required"),
    ],
)
def test_missing_required_field(valid_payload, field, message):
    del valid_payload[field]
    assert _reject(valid_payload) == message


@pytest.mark.parametrize("name", ["test user", "TESTER", "admin", "Administrator", "a", "Jo", "12345"])
def test_suspicious_names_rejected(valid_payload, name):
    valid_payload["name"] = name
    assert _reject(valid_payload) == INVALID_NAME_MESSAGE


@pytest.mark.parametrize("name", ["Joe", "Al Smith", "Contest Winner", "R2D2", "Mr. Admin"])
def test_ordinary_names_are_not_suspicious(name):
    assert not is_suspicious_name(name)


def test_first_failing_field_wins(valid_payload):
    valid_payload.update(email="broken", partySize=99, time="99:99")
    assert _reject(valid_payload) == "Invalid email"


def test_name_format_reported_before_other_fields(valid_payload):
    valid_payload.update(name="admin", email="broken")
    assert _reject(valid_payload) == INVALID_NAME_MESSAGE


def test_rules_follow_field_order():
    fields = list(dict.fromkeys(rule.field for rule in BOOKING_RULES))
    assert fields == ["name", "email", "phone", "date", "time", "partySize", "occasion", "notes"]
