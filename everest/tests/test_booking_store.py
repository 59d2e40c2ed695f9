import os
from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from everest.app.routers.schemas import BookingRequest, BookingStatus
from everest.app.services.bookings import SqlBookingStore


# Runs against a migrated database (`alembic upgrade head`).
DATABASE_URL = os.getenv("EVEREST_TEST_DATABASE_URL")

pytestmark = [
    pytest.mark.asyncio,
    pytest.mark.skipif(not DATABASE_URL, reason="EVEREST_TEST_DATABASE_URL not set"),
]

TEST_DAY = date(2099, 3, 14)


def _booking(time: str, name: str) -> BookingRequest:
    return BookingRequest(
        name=name,
        email="a@b.com",
        phone="+16135551234",
        date=TEST_DAY,
        time=time,
        party_size=4,
        occasion="anniversary",
    )


async def test_sql_booking_store_round_trip():
    engine = create_async_engine(DATABASE_URL)
    sessions = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    try:
        async with sessions() as session:
            await session.execute(
                text("DELETE FROM table_booking WHERE booking_date = :day"),
                {"day": TEST_DAY},
            )
            await session.commit()

            store = SqlBookingStore(session)
            late = await store.create(_booking("19:00", "Late Guest"))
            early = await store.create(_booking("11:30", "Early Guest"))

            assert late.status is BookingStatus.PENDING
            assert late.created_at == late.updated_at

            listed = await store.list_by_date(TEST_DAY)
            assert [b.name for b in listed] == ["Early Guest", "Late Guest"]

            fetched = await store.get(early.id)
            assert fetched is not None and fetched.occasion == "anniversary"
            assert await store.get("not-a-uuid") is None

            confirmed = await store.update_status(early.id, BookingStatus.CONFIRMED)
            assert confirmed.status is BookingStatus.CONFIRMED
            assert confirmed.updated_at >= early.updated_at

            await session.execute(
                text("DELETE FROM table_booking WHERE booking_date = :day"),
                {"day": TEST_DAY},
            )
            await session.commit()
    finally:
        await engine.dispose()
