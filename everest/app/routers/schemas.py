import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class BookingRequest(BaseModel):
    """A booking submission that passed validation."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    email: str
    phone: str
    date: dt.date
    # 24-hour "HH:MM"
    time: str
    party_size: int = Field(alias="partySize")
    occasion: str | None = None
    notes: str | None = None


class BookingRecord(BookingRequest):
    id: str = Field(alias="_id")
    status: BookingStatus = BookingStatus.PENDING
    created_at: dt.datetime = Field(alias="createdAt")
    updated_at: dt.datetime = Field(alias="updatedAt")


class UpdateBookingStatusIn(BaseModel):
    booking_id: str = Field(alias="bookingId", min_length=1)
    status: BookingStatus


class BookingOut(BaseModel):
    success: bool = True
    booking: BookingRecord


class BookingListOut(BaseModel):
    success: bool = True
    bookings: list[BookingRecord]


class UpdateBookingStatusOut(BaseModel):
    success: bool = True
    updated: BookingRecord
