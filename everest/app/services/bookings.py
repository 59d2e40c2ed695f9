from datetime import date, datetime, timezone
from typing import Protocol
from uuid import UUID, uuid4

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from everest.app.core.errors import StoreUnavailableError
from everest.app.routers.schemas import BookingRecord, BookingRequest, BookingStatus

_COLUMNS = """
    id, name, email, phone, booking_date, booking_time, party_size,
    occasion, notes, status, created_at, updated_at
"""


class BookingStore(Protocol):
    async def create(self, booking: BookingRequest) -> BookingRecord: ...

    async def get(self, booking_id: str) -> BookingRecord | None: ...

    async def list_by_date(self, booking_date: date) -> list[BookingRecord]: ...

    async def update_status(self, booking_id: str, status: BookingStatus) -> BookingRecord | None: ...


def _row_to_record(row) -> BookingRecord:
    return BookingRecord(
        id=str(row["id"]),
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        date=row["booking_date"],
        time=row["booking_time"],
        party_size=row["party_size"],
        occasion=row["occasion"],
        notes=row["notes"],
        status=BookingStatus(row["status"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _parse_id(booking_id: str) -> UUID | None:
    try:
        return UUID(booking_id)
    except ValueError:
        return None


class SqlBookingStore:
    """Bookings in the ``table_booking`` table, written through an AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, booking: BookingRequest) -> BookingRecord:
        now = datetime.now(timezone.utc)
        query = text(
            f"""
            INSERT INTO table_booking (
              id, name, email, phone, booking_date, booking_time, party_size,
              occasion, notes, status, created_at, updated_at
            ) VALUES (
              :id, :name, :email, :phone, :booking_date, :booking_time, :party_size,
              :occasion, :notes, :status, :now, :now
            )
            RETURNING {_COLUMNS}
            """
        )
        params = {
            "id": uuid4(),
            "name": booking.name,
            "email": booking.email,
            "phone": booking.phone,
            "booking_date": booking.date,
            "booking_time": booking.time,
            "party_size": booking.party_size,
            "occasion": booking.occasion,
            "notes": booking.notes,
            "status": BookingStatus.PENDING.value,
            "now": now,
        }
        try:
            result = await self.session.execute(query, params)
            row = result.mappings().one()
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreUnavailableError("database", f"Booking insert failed: {exc}") from exc
        return _row_to_record(row)

    async def get(self, booking_id: str) -> BookingRecord | None:
        parsed = _parse_id(booking_id)
        if parsed is None:
            return None
        try:
            result = await self.session.execute(
                text(f"SELECT {_COLUMNS} FROM table_booking WHERE id = :id"),
                {"id": parsed},
            )
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("database", f"Booking lookup failed: {exc}") from exc
        row = result.mappings().one_or_none()
        return _row_to_record(row) if row is not None else None

    async def list_by_date(self, booking_date: date) -> list[BookingRecord]:
        try:
            result = await self.session.execute(
                text(
                    f"""
                    SELECT {_COLUMNS}
                    FROM table_booking
                    WHERE booking_date = :booking_date
                    ORDER BY booking_time ASC
                    """
                ),
                {"booking_date": booking_date},
            )
        except SQLAlchemyError as exc:
            raise StoreUnavailableError("database", f"Booking query failed: {exc}") from exc
        return [_row_to_record(row) for row in result.mappings().all()]

    async def update_status(self, booking_id: str, status: BookingStatus) -> BookingRecord | None:
        parsed = _parse_id(booking_id)
        if parsed is None:
            return None
        query = text(
            f"""
            UPDATE table_booking
            SET status = :status, updated_at = :now
            WHERE id = :id
            RETURNING {_COLUMNS}
            """
        )
        try:
            result = await self.session.execute(
                query,
                {"id": parsed, "status": status.value, "now": datetime.now(timezone.utc)},
            )
            row = result.mappings().one_or_none()
            await self.session.commit()
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise StoreUnavailableError("database", f"Booking update failed: {exc}") from exc
        return _row_to_record(row) if row is not None else None
