from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from everest.app.core.errors import BookingValidationError
from everest.app.routers.schemas import BookingRequest

OUTSIDE_HOURS_MESSAGE = "Selected time is outside of operating hours."
CLOSED_DAY_MESSAGE = "The restaurant is closed on the selected day."


def to_minutes(value: str) -> int:
    """Minutes since midnight for an "H:MM" / "HH:MM" string."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


@dataclass(frozen=True)
class ServiceWindow:
    name: str
    start: str
    end: str

    def contains(self, minutes: int) -> bool:
        # Both endpoints are bookable.
        return to_minutes(self.start) <= minutes <= to_minutes(self.end)


SERVICE_WINDOWS: tuple[ServiceWindow, ...] = (
    ServiceWindow("lunch", "11:30", "14:00"),
    ServiceWindow("dinner", "17:00", "22:30"),
)


def is_bookable(time: str, windows: Iterable[ServiceWindow] = SERVICE_WINDOWS) -> bool:
    minutes = to_minutes(time)
    return any(window.contains(minutes) for window in windows)


class HoursGate:
    """Rejects bookings outside the service windows.

    Weekday closures are opt-in through ``closed_weekdays`` (Monday=0); with
    the default empty set the gate only looks at the time of day.
    """

    def __init__(
        self,
        windows: Iterable[ServiceWindow] = SERVICE_WINDOWS,
        closed_weekdays: Iterable[int] = (),
    ) -> None:
        self.windows = tuple(windows)
        self.closed_weekdays = frozenset(closed_weekdays)

    def check(self, booking: BookingRequest) -> None:
        if not is_bookable(booking.time, self.windows):
            raise BookingValidationError(OUTSIDE_HOURS_MESSAGE)
        if booking.date.weekday() in self.closed_weekdays:
            raise BookingValidationError(CLOSED_DAY_MESSAGE)
