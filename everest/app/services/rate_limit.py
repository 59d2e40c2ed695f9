"""Per-IP and per-email booking attempt counters.

Counters live in an external store so every app instance shares them. A
counter is created by its first increment, which also starts its 24 hour
expiry; counters are only ever removed by expiring.
"""
from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from typing import Protocol

import redis.asyncio as redis
import structlog
from fastapi import Request
from redis.exceptions import RedisError

from everest.app.core.errors import RateLimitError, StoreUnavailableError

logger = structlog.get_logger(__name__)

MAX_ATTEMPTS = 3
WINDOW_SECONDS = 24 * 60 * 60

IP_KEY_PREFIX = "booking-rate"
EMAIL_KEY_PREFIX = "booking-email"

IP_LIMIT_MESSAGE = "Too many booking attempts. Please try again tomorrow."
EMAIL_LIMIT_MESSAGE = "This email has been used for too many bookings recently."


class RateStore(Protocol):
    async def increment_and_get_count(self, key: str, ttl_seconds: int) -> int:
        """Atomically increment ``key`` and return the new count."""
        ...


class RedisRateStore:
    def __init__(self, client: redis.Redis | None, timeout_seconds: float = 2.0) -> None:
        self.client = client
        self.timeout_seconds = timeout_seconds

    async def _incr(self, key: str, ttl_seconds: int) -> int:
        # INCR and EXPIRE NX go out as one MULTI/EXEC, so a counter never
        # exists without a TTL even if the reply is lost. NX needs Redis >= 7.
        async with self.client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, ttl_seconds, nx=True)
            count, _ = await pipe.execute()
        return int(count)

    async def increment_and_get_count(self, key: str, ttl_seconds: int) -> int:
        if self.client is None:
            raise StoreUnavailableError("redis", "Redis unavailable")
        try:
            return await asyncio.wait_for(self._incr(key, ttl_seconds), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise StoreUnavailableError("redis", "Redis timed out") from exc
        except RedisError as exc:
            raise StoreUnavailableError("redis", f"Redis error: {exc}") from exc


class InMemoryRateStore:
    """Process-local counters with the same expiry semantics as Redis.

    Expired counters are swept at most once per ``sweep_interval`` seconds so
    keys that never come back do not accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0) -> None:
        self.clock = clock
        self.sweep_interval = sweep_interval
        self._counters: dict[str, tuple[int, float]] = {}
        self._next_sweep = clock() + sweep_interval

    def __contains__(self, key: str) -> bool:
        return key in self._counters

    async def increment_and_get_count(self, key: str, ttl_seconds: int) -> int:
        now = self.clock()
        if now >= self._next_sweep:
            self._sweep(now)
        count, expires_at = self._counters.get(key, (0, now + ttl_seconds))
        if expires_at <= now:
            count, expires_at = 0, now + ttl_seconds
        count += 1
        self._counters[key] = (count, expires_at)
        return count

    def _sweep(self, now: float) -> None:
        self._counters = {k: v for k, v in self._counters.items() if v[1] > now}
        self._next_sweep = now + self.sweep_interval

    def clear(self) -> None:
        self._counters.clear()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def normalize_email(email: str) -> str:
    return email.strip().lower()


class AbuseGuard:
    def __init__(
        self,
        store: RateStore,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        window_seconds: int = WINDOW_SECONDS,
        fail_open: bool = False,
    ) -> None:
        self.store = store
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.fail_open = fail_open

    async def check_and_increment(self, key: str) -> int:
        return await self.store.increment_and_get_count(key, self.window_seconds)

    async def check(self, ip: str, email: str | None) -> None:
        """Count this attempt against the IP, then the email.

        Raises ``RateLimitError`` for the first dimension over the ceiling; an
        IP rejection means the email counter is left untouched. Store outages
        raise ``StoreUnavailableError`` unless the guard is fail-open.
        """
        try:
            await self._check_dimension("ip", f"{IP_KEY_PREFIX}:{ip}", IP_LIMIT_MESSAGE)
            if email:
                await self._check_dimension(
                    "email",
                    f"{EMAIL_KEY_PREFIX}:{normalize_email(email)}",
                    EMAIL_LIMIT_MESSAGE,
                )
        except StoreUnavailableError as exc:
            if not self.fail_open:
                raise
            logger.warning("rate_store_unavailable", service=exc.service, error=exc.message)

    async def _check_dimension(self, dimension: str, key: str, message: str) -> None:
        count = await self.check_and_increment(key)
        if count > self.max_attempts:
            logger.warning("booking_rate_limited", dimension=dimension, count=count)
            raise RateLimitError(message, dimension=dimension)
