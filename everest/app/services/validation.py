"""Structural and business-rule validation for booking submissions.

Rules are evaluated in declaration order and validation stops at the first
failure, so the message a caller sees for a payload with several problems is
always the one belonging to the earliest rule in ``BOOKING_RULES``.
"""
from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from everest.app.core.config import settings
from everest.app.core.errors import BookingValidationError
from everest.app.routers.schemas import BookingRequest

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PARTY_MIN = 1
PARTY_MAX = 20
NOTES_MAX_LENGTH = 500

INVALID_PAYLOAD_MESSAGE = "Invalid booking payload"
INVALID_NAME_MESSAGE = "Invalid name format"

SUSPICIOUS_NAME_PATTERNS = (
    re.compile(r"test", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
    re.compile(r"[a-z]{1,2}", re.IGNORECASE),
    re.compile(r"[0-9]+"),
)
# The first two patterns are prefixes, the last two must cover the whole name.
_PREFIX_PATTERNS = SUSPICIOUS_NAME_PATTERNS[:2]
_FULL_PATTERNS = SUSPICIOUS_NAME_PATTERNS[2:]

DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")
TIME_PATTERN = re.compile(r"([0-1]?[0-9]|2[0-3]):[0-5][0-9]")


@dataclass(frozen=True)
class ValidationContext:
    today: date
    phone_region: str


@dataclass(frozen=True)
class FieldRule:
    field: str
    check: Callable[[Any, ValidationContext], bool]
    message: str


def is_suspicious_name(name: str) -> bool:
    if any(pattern.match(name) for pattern in _PREFIX_PATTERNS):
        return True
    return any(pattern.fullmatch(name) for pattern in _FULL_PATTERNS)


def _present(value: Any, _: ValidationContext) -> bool:
    return value is not None


def _is_text(value: Any, _: ValidationContext) -> bool:
    return isinstance(value, str)


def _optional(check: Callable[[Any, ValidationContext], bool]) -> Callable[[Any, ValidationContext], bool]:
    def wrapped(value: Any, ctx: ValidationContext) -> bool:
        return value is None or check(value, ctx)

    return wrapped


def _valid_email(value: str, _: ValidationContext) -> bool:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def _valid_phone(value: str, ctx: ValidationContext) -> bool:
    try:
        number = phonenumbers.parse(value, ctx.phone_region)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_valid_number(number)


def _iso_date(value: str, _: ValidationContext) -> bool:
    if not DATE_PATTERN.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def _not_in_past(value: str, ctx: ValidationContext) -> bool:
    return date.fromisoformat(value) >= ctx.today


def _whole_number(value: Any, _: ValidationContext) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, float):
        return value.is_integer()
    return isinstance(value, int)


BOOKING_RULES: tuple[FieldRule, ...] = (
    FieldRule("name", _present, "Name is required"),
    FieldRule("name", _is_text, "Name must be text"),
    FieldRule("name", lambda v, _: not is_suspicious_name(v), INVALID_NAME_MESSAGE),
    FieldRule("name", lambda v, _: len(v) >= NAME_MIN_LENGTH, f"Name must be at least {NAME_MIN_LENGTH} characters"),
    FieldRule("name", lambda v, _: len(v) <= NAME_MAX_LENGTH, f"Name must be at most {NAME_MAX_LENGTH} characters"),
    FieldRule("email", _present, "Email is required"),
    FieldRule("email", _is_text, "Invalid email"),
    FieldRule("email", _valid_email, "Invalid email"),
    FieldRule("phone", _present, "Phone number is required"),
    FieldRule("phone", _is_text, "Invalid phone number"),
    FieldRule("phone", _valid_phone, "Invalid phone number"),
    FieldRule("date", _present, "Date is required"),
    FieldRule("date", _is_text, "Invalid date format"),
    FieldRule("date", _iso_date, "Invalid date format"),
    FieldRule("date", _not_in_past, "Booking date must be today or in the future"),
    FieldRule("time", _present, "Time is required"),
    FieldRule("time", _is_text, "Invalid time format"),
    FieldRule("time", lambda v, _: TIME_PATTERN.fullmatch(v) is not None, "Invalid time format"),
    FieldRule("partySize", _present, "Party size is required"),
    FieldRule("partySize", _whole_number, "Party size must be a whole number"),
    FieldRule("partySize", lambda v, _: v >= PARTY_MIN, f"Party size must be at least {PARTY_MIN}"),
    FieldRule("partySize", lambda v, _: v <= PARTY_MAX, f"Party size must be at most {PARTY_MAX}"),
    FieldRule("occasion", _optional(_is_text), "Occasion must be text"),
    FieldRule("notes", _optional(_is_text), "Notes must be text"),
    FieldRule(
        "notes",
        _optional(lambda v, _: len(v) <= NOTES_MAX_LENGTH),
        f"Notes must be at most {NOTES_MAX_LENGTH} characters",
    ),
)


def restaurant_today() -> date:
    return datetime.now(ZoneInfo(settings.RESTAURANT_TIMEZONE)).date()


def validate_booking(
    raw: Any,
    *,
    today: date | None = None,
    phone_region: str | None = None,
) -> BookingRequest:
    """Validate an untrusted booking payload.

    Raises ``BookingValidationError`` carrying the message of the first
    violated rule; never returns a partially validated booking.
    """
    if not isinstance(raw, dict):
        raise BookingValidationError(INVALID_PAYLOAD_MESSAGE)

    ctx = ValidationContext(
        today=today or restaurant_today(),
        phone_region=phone_region or settings.PHONE_REGION,
    )
    for rule in BOOKING_RULES:
        if not rule.check(raw.get(rule.field), ctx):
            raise BookingValidationError(rule.message)

    hours, minutes = raw["time"].split(":")
    return BookingRequest(
        name=raw["name"],
        email=raw["email"],
        phone=raw["phone"],
        date=date.fromisoformat(raw["date"]),
        time=f"{int(hours):02d}:{minutes}",
        party_size=int(raw["partySize"]),
        occasion=raw.get("occasion"),
        notes=raw.get("notes"),
    )
