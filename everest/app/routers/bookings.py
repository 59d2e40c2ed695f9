import secrets
from datetime import date

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from everest.app.core import redis_client as redis_module
from everest.app.core.config import settings
from everest.app.core.errors import BookingNotFoundError
from everest.app.core.logging import request_id_ctx, run_in_request_context
from everest.app.db.session import get_session
from everest.app.routers.schemas import (
    BookingListOut,
    BookingOut,
    BookingStatus,
    UpdateBookingStatusIn,
    UpdateBookingStatusOut,
)
from everest.app.services.bookings import BookingStore, SqlBookingStore
from everest.app.services.hours import HoursGate
from everest.app.services.intake import BookingIntake
from everest.app.services.notifications import Notifier
from everest.app.services.rate_limit import AbuseGuard, InMemoryRateStore, RateStore, RedisRateStore, client_ip


logger = structlog.get_logger(__name__)

router = APIRouter()

_memory_rate_store = InMemoryRateStore()


def get_rate_store() -> RateStore:
    if settings.RATE_LIMIT_BACKEND == "memory":
        return _memory_rate_store
    return RedisRateStore(redis_module.redis_client, timeout_seconds=settings.RATE_STORE_TIMEOUT_SECONDS)


def get_intake(rate_store: RateStore = Depends(get_rate_store)) -> BookingIntake:
    guard = AbuseGuard(
        rate_store,
        max_attempts=settings.RATE_LIMIT_MAX_ATTEMPTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        fail_open=settings.RATE_LIMIT_FAIL_OPEN,
    )
    return BookingIntake(guard, HoursGate(closed_weekdays=settings.CLOSED_WEEKDAYS))


def get_booking_store(session: AsyncSession = Depends(get_session)) -> BookingStore:
    return SqlBookingStore(session)


def get_notifier() -> Notifier:
    return Notifier(settings)


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    expected = settings.ADMIN_API_KEY
    if expected and not (x_admin_key and secrets.compare_digest(x_admin_key, expected)):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail="Invalid admin key")


async def _read_json(request: Request):
    try:
        return await request.json()
    except ValueError:
        # Not JSON; the validator rejects it as a non-object payload.
        return None


@router.post("/book-table", response_model=BookingOut)
async def book_table(
    request: Request,
    background_tasks: BackgroundTasks,
    intake: BookingIntake = Depends(get_intake),
    store: BookingStore = Depends(get_booking_store),
    notifier: Notifier = Depends(get_notifier),
):
    payload = await _read_json(request)
    result = await intake.process(payload, client_ip(request))
    if not result.accepted:
        return JSONResponse(
            status_code=result.status_code,
            content={"success": False, "error": result.error},
        )

    record = await store.create(result.booking)
    logger.info("booking_accepted", booking_id=record.id, date=record.date.isoformat(), time=record.time)
    background_tasks.add_task(run_in_request_context, request_id_ctx.get(), notifier.booking_received, record)
    return BookingOut(booking=record)


@router.get("/bookings", response_model=BookingListOut, dependencies=[Depends(require_admin)])
async def list_bookings(
    booking_date: date = Query(alias="date"),
    store: BookingStore = Depends(get_booking_store),
) -> BookingListOut:
    return BookingListOut(bookings=await store.list_by_date(booking_date))


@router.get("/bookings/{booking_id}", response_model=BookingOut, dependencies=[Depends(require_admin)])
async def get_booking(booking_id: str, store: BookingStore = Depends(get_booking_store)) -> BookingOut:
    record = await store.get(booking_id)
    if record is None:
        raise BookingNotFoundError("Booking not found")
    return BookingOut(booking=record)


@router.post(
    "/update-booking-status",
    response_model=UpdateBookingStatusOut,
    dependencies=[Depends(require_admin)],
)
async def update_booking_status(
    payload: UpdateBookingStatusIn,
    background_tasks: BackgroundTasks,
    store: BookingStore = Depends(get_booking_store),
    notifier: Notifier = Depends(get_notifier),
) -> UpdateBookingStatusOut:
    record = await store.update_status(payload.booking_id, payload.status)
    if record is None:
        raise BookingNotFoundError("Booking not found")

    logger.info("booking_status_updated", booking_id=record.id, status=record.status.value)
    if record.status is BookingStatus.CONFIRMED:
        background_tasks.add_task(run_in_request_context, request_id_ctx.get(), notifier.booking_confirmed, record)
    return UpdateBookingStatusOut(updated=record)
