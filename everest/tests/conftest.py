from datetime import date, datetime, timezone
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from everest.app.core.logging import request_id_ctx
from everest.app.main import app
from everest.app.routers.bookings import get_booking_store, get_notifier, get_rate_store
from everest.app.routers.schemas import BookingRecord, BookingRequest, BookingStatus
from everest.app.services.rate_limit import InMemoryRateStore


class InMemoryBookingStore:
    def __init__(self) -> None:
        self.records: dict[str, BookingRecord] = {}

    async def create(self, booking: BookingRequest) -> BookingRecord:
        now = datetime.now(timezone.utc)
        record = BookingRecord(
            id=str(uuid4()),
            created_at=now,
            updated_at=now,
            **booking.model_dump(),
        )
        self.records[record.id] = record
        return record

    async def get(self, booking_id: str) -> BookingRecord | None:
        return self.records.get(booking_id)

    async def list_by_date(self, booking_date: date) -> list[BookingRecord]:
        matches = [r for r in self.records.values() if r.date == booking_date]
        return sorted(matches, key=lambda r: r.time)

    async def update_status(self, booking_id: str, status: BookingStatus) -> BookingRecord | None:
        record = self.records.get(booking_id)
        if record is None:
            return None
        updated = record.model_copy(update={"status": status, "updated_at": datetime.now(timezone.utc)})
        self.records[booking_id] = updated
        return updated


class RecordingNotifier:
    def __init__(self) -> None:
        self.received: list[BookingRecord] = []
        self.confirmed: list[BookingRecord] = []
        self.request_ids: list[str | None] = []

    async def booking_received(self, record: BookingRecord) -> None:
        self.received.append(record)
        self.request_ids.append(request_id_ctx.get())

    async def booking_confirmed(self, record: BookingRecord) -> None:
        self.confirmed.append(record)


@pytest.fixture()
def valid_payload() -> dict:
    return {
        "name": "John Doe",
        "email": "a@b.com",
        "phone": "+16135551234",
        "date": "2099-01-01",
        "time": "12:00",
        "partySize": 2,
    }


@pytest.fixture()
def rate_store() -> InMemoryRateStore:
    return InMemoryRateStore()


@pytest.fixture()
def booking_store() -> InMemoryBookingStore:
    return InMemoryBookingStore()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def api(rate_store, booking_store, notifier):
    """Wire the app to in-memory collaborators and hand back a client factory."""
    app.dependency_overrides[get_rate_store] = lambda: rate_store
    app.dependency_overrides[get_booking_store] = lambda: booking_store
    app.dependency_overrides[get_notifier] = lambda: notifier

    def client(**kwargs) -> AsyncClient:
        return AsyncClient(transport=ASGITransport(app=app), base_url="http://test", **kwargs)

    yield client
    app.dependency_overrides.clear()
