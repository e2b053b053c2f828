"""
Per-client token-bucket admission control.

One ``RateLimiter`` is built at startup and shared by every request through
``app.state``. Buckets are created lazily (full) on first sight of a key and
evicted by a background sweep once idle for ``idle_timeout`` seconds.

The bucket map is the only in-process state every request touches. A plain
lock guards it; the lock is held for a single bucket update or a single
sweep pass and never across an ``await``.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from forum.core.exceptions import RateLimitExceededError, error_response

logger = logging.getLogger(__name__)


@dataclass
class _Bucket:
    tokens: float
    updated_at: float
    last_seen: float


class RateLimiter:
    def __init__(
        self,
        rps: float,
        burst: int,
        enabled: bool = True,
        idle_timeout: float = 180.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rps <= 0 or burst < 1:
            raise ValueError("rate limiter needs rps > 0 and burst >= 1")
        self.rps = rps
        self.burst = burst
        self.enabled = enabled
        self.idle_timeout = idle_timeout
        self._clock = clock
        self._buckets: dict[str, _Bucket] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buckets)

    def allow(self, key: str) -> bool:
        """Consume one token for *key* if available."""
        if not self.enabled:
            return True

        with self._lock:
            now = self._clock()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = _Bucket(tokens=float(self.burst), updated_at=now, last_seen=now)
            else:
                elapsed = max(0.0, now - bucket.updated_at)
                bucket.tokens = min(float(self.burst), bucket.tokens + elapsed * self.rps)
                bucket.updated_at = now
            bucket.last_seen = now

            if bucket.tokens >= 1.0:
                bucket.tokens -= 1.0
                return True
            return False

    def sweep(self) -> int:
        """Evict buckets idle for longer than ``idle_timeout``."""
        with self._lock:
            cutoff = self._clock() - self.idle_timeout
            stale = [key for key, bucket in self._buckets.items() if bucket.last_seen < cutoff]
            for key in stale:
                del self._buckets[key]
        if stale:
            logger.debug("Evicted %d idle rate-limit bucket(s)", len(stale))
        return len(stale)

    async def run_sweeper(self, interval: float) -> None:
        """Sweep every *interval* seconds until cancelled."""
        logger.info("Rate-limit sweeper started (every %.0fs)", interval)
        try:
            while True:
                await asyncio.sleep(interval)
                self.sweep()
        except asyncio.CancelledError:
            logger.info("Rate-limit sweeper stopped")
            raise


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject over-limit clients before any other processing."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        limiter: RateLimiter | None = getattr(request.app.state, "rate_limiter", None)
        if limiter is not None:
            key = client_key(request)
            if not limiter.allow(key):
                logger.debug("Rate limit exceeded for %s", key)
                return error_response(RateLimitExceededError.status_code, RateLimitExceededError.message)
        return await call_next(request)
