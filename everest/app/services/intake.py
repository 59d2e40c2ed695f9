from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

import structlog

from everest.app.core.errors import UNEXPECTED_ERROR_MESSAGE, BookingError
from everest.app.routers.schemas import BookingRequest
from everest.app.services.hours import HoursGate
from everest.app.services.rate_limit import AbuseGuard
from everest.app.services.validation import validate_booking

logger = structlog.get_logger(__name__)


class IntakeStage(str, Enum):
    RATE_CHECK = "rate_check"
    SCHEMA_CHECK = "schema_check"
    HOURS_CHECK = "hours_check"
    ACCEPT = "accept"


@dataclass(frozen=True)
class IntakeResult:
    stage: IntakeStage
    status_code: int
    booking: BookingRequest | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.stage is IntakeStage.ACCEPT


class BookingIntake:
    """Runs a submission through rate check, schema check and hours check.

    The first failing stage ends the run; nothing is persisted here, callers
    store and announce the booking only for accepted results.
    """

    def __init__(
        self,
        guard: AbuseGuard,
        hours_gate: HoursGate,
        *,
        today: date | None = None,
        phone_region: str | None = None,
    ) -> None:
        self.guard = guard
        self.hours_gate = hours_gate
        self.today = today
        self.phone_region = phone_region

    async def process(self, payload: Any, client_ip: str) -> IntakeResult:
        stage = IntakeStage.RATE_CHECK
        try:
            await self.guard.check(client_ip, _submitted_email(payload))

            stage = IntakeStage.SCHEMA_CHECK
            booking = validate_booking(payload, today=self.today, phone_region=self.phone_region)

            stage = IntakeStage.HOURS_CHECK
            self.hours_gate.check(booking)
        except BookingError as exc:
            if exc.status_code >= 500:
                logger.error("booking_intake_failed", stage=stage.value, error=exc.message)
            else:
                logger.info("booking_rejected", stage=stage.value, reason=exc.message)
            return IntakeResult(stage=stage, status_code=exc.status_code, error=exc.public_message)
        except Exception:
            logger.exception("booking_intake_failed", stage=stage.value)
            return IntakeResult(stage=stage, status_code=500, error=UNEXPECTED_ERROR_MESSAGE)

        return IntakeResult(stage=IntakeStage.ACCEPT, status_code=200, booking=booking)


def _submitted_email(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    email = payload.get("email")
    if isinstance(email, str) and email.strip():
        return email
    return None
