"""Simple in-memory fixed-window rate limiter for public endpoints."""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_at: float  # Epoch seconds when the current window ends

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(int(self.reset_at)),
        }


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    Fixed-window counter keyed by client token.

    Windows are aligned to multiples of ``interval_seconds``, so a client can
    burst up to twice the limit across a window boundary.

    Args:
        interval_seconds: Window length in seconds.
        clock: Time source returning epoch seconds (injectable for tests).
    """

    def __init__(
        self,
        interval_seconds: float,
        clock: Callable[[], float] = time.time,
    ):
        self.interval_seconds = interval_seconds
        self._clock = clock
        # {(token, window_index): _Window}
        self._windows: dict[tuple[str, int], _Window] = {}
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._windows)

    def _prune(self, now: float) -> int:
        expired = [key for key, w in self._windows.items() if w.reset_at < now]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def check(self, limit: int, key: str) -> RateLimitResult:
        """Count one request for ``key`` and report whether it is allowed."""
        with self._lock:
            now = self._clock()
            self._prune(now)

            window_index = math.floor(now / self.interval_seconds)
            window = self._windows.get((key, window_index))
            if window is None:
                window_start = window_index * self.interval_seconds
                window = _Window(count=0, reset_at=window_start + self.interval_seconds)
                self._windows[(key, window_index)] = window

            success = window.count < limit
            if success:
                window.count += 1

            return RateLimitResult(
                success=success,
                limit=limit,
                remaining=max(0, limit - window.count),
                reset_at=window.reset_at,
            )

    def sweep(self) -> int:
        """Drop expired windows. Returns how many were removed."""
        with self._lock:
            return self._prune(self._clock())

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def start_sweeping(self, every_seconds: float = 60) -> None:
        """Start the background sweep if not already running."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop(every_seconds))

    def stop_sweeping(self) -> None:
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
        self._sweep_task = None

    async def _sweep_loop(self, every_seconds: float) -> None:
        while True:
            try:
                await asyncio.sleep(every_seconds)
            except asyncio.CancelledError:
                break
            removed = self.sweep()
            if removed:
                logger.debug(f"Rate limiter swept {removed} expired windows")


def get_client_ip(request: Request) -> str:
    """Extract client IP, respecting X-Forwarded-For behind reverse proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # First IP in the chain is the original client
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"


def enforce(limiter: RateLimiter, limit: int, request: Request) -> RateLimitResult:
    """Raise 429 (with X-RateLimit headers) if the client is over ``limit``."""
    result = limiter.check(limit, get_client_ip(request))
    if not result.success:
        raise HTTPException(
            status_code=429, detail="Too many requests", headers=result.headers()
        )
    return result


# Webhook: GitHub delivers in bursts on multi-commit pushes
WEBHOOK_LIMIT = 30
# Editor endpoints (manual revalidation, file writes)
EDITOR_LIMIT = 20

rate_limiter = RateLimiter(interval_seconds=60)


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency returning the process-wide limiter."""
    return rate_limiter
