from __future__ import annotations

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class BookingError(Exception):
    """Base class for failures that map onto a booking API response."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        return self.message


class BookingValidationError(BookingError):
    status_code = 400


class RateLimitError(BookingError):
    status_code = 429

    def __init__(self, message: str, dimension: str) -> None:
        super().__init__(message)
        self.dimension = dimension


class StoreUnavailableError(BookingError):
    """An external store (rate counters, booking storage) could not be reached."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(message)
        self.service = service

    @property
    def public_message(self) -> str:
        return UNEXPECTED_ERROR_MESSAGE


class BookingNotFoundError(BookingError):
    status_code = 404
