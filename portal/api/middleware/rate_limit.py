"""
Sign-in throttling per client IP.

Covers the JSON login endpoint and the three portal login forms. Other
requests pass through untouched.
"""

import json
import math
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from portal.api.deps import get_client_ip
from portal.config import get_settings
from portal.logging_config import get_logger, get_request_id

logger = get_logger(__name__)

PORTAL_LOGIN_PATHS = frozenset({"/admin/login", "/teacher/login", "/student/login"})


def client_ip(request: Request) -> str:
    return get_client_ip(request) or "unknown"


class SlidingWindowLimiter:
    """
    In-memory sliding window: key -> timestamps of accepted attempts.

    Only keys with an attempt inside the window are kept.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._hits: Dict[str, Deque[float]] = {}
        self._clock = clock
        self._last_sweep = clock()

    def hit(self, key: str, limit: int, window_seconds: float) -> Optional[float]:
        """
        Record an attempt.

        Returns None when accepted, or the seconds until the next attempt
        would be accepted.
        """
        now = self._clock()
        if now - self._last_sweep >= window_seconds:
            self._sweep(now, window_seconds)

        hits = self._hits.setdefault(key, deque())
        while hits and now - hits[0] >= window_seconds:
            hits.popleft()
        if len(hits) >= limit:
            return window_seconds - (now - hits[0])
        hits.append(now)
        return None

    def _sweep(self, now: float, window_seconds: float) -> None:
        """Drop keys whose newest attempt has left the window."""
        stale = [key for key, hits in self._hits.items() if not hits or now - hits[-1] >= window_seconds]
        for key in stale:
            del self._hits[key]
        self._last_sweep = now

    def __len__(self) -> int:
        return len(self._hits)

    def reset(self) -> None:
        self._hits.clear()


# Module-level limiter (single process)
_limiter: Optional[SlidingWindowLimiter] = None


def get_limiter() -> SlidingWindowLimiter:
    global _limiter
    if _limiter is None:
        _limiter = SlidingWindowLimiter()
    return _limiter


def is_sign_in(request: Request) -> bool:
    if request.method != "POST":
        return False
    path = request.url.path.rstrip("/")
    return path == f"{get_settings().api_v1_prefix}/auth/login" or path in PORTAL_LOGIN_PATHS


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject sign-in attempts beyond the per-minute limit with 429."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled or not is_sign_in(request):
            return await call_next(request)

        ip = client_ip(request)
        retry_after = get_limiter().hit(f"sign_in:{ip}", settings.rate_limit_sign_in_per_minute, 60)
        if retry_after is None:
            return await call_next(request)

        logger.warning("Sign-in rate limit exceeded", extra={"client_ip": ip, "path": request.url.path})
        return Response(
            content=json.dumps({
                "detail": "Too many sign-in attempts. Please try again later.",
                "code": "rate_limited",
                "request_id": get_request_id(),
            }),
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            media_type="application/json",
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )
