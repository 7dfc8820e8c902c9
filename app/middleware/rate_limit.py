"""
In-memory sliding-window rate limiting for login, OTP and ops endpoints.

Counts are kept per (client IP, path prefix), so hammering /api/auth/login does
not lock the same client out of /admin. Single-process only.
"""

import logging
import time
from collections import defaultdict, deque
from collections.abc import Callable

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.config import settings

logger = logging.getLogger(__name__)

_rate_limit_store: dict[tuple[str, str], deque[float]] = defaultdict(deque)


def reset_rate_limits() -> None:
    _rate_limit_store.clear()


def _is_rate_limited(key: tuple[str, str], now: float | None = None) -> bool:
    """Record a hit for key unless the window is already full."""
    if not settings.rate_limit_enabled:
        return False
    now = time.monotonic() if now is None else now
    hits = _rate_limit_store[key]
    cutoff = now - settings.rate_limit_window_seconds
    while hits and hits[0] <= cutoff:
        hits.popleft()
    if len(hits) >= settings.rate_limit_requests:
        return True
    hits.append(now)
    return False


def get_client_ip(request: Request) -> str:
    """Client IP, honouring X-Forwarded-For / X-Real-IP from the proxy."""
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Rate limiting middleware for specific path prefixes."""

    def __init__(self, app, rate_limited_paths: list[str]):
        super().__init__(app)
        self.rate_limited_paths = rate_limited_paths

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        prefix = next((p for p in self.rate_limited_paths if path.startswith(p)), None)
        if prefix is not None:
            client_ip = get_client_ip(request)
            if _is_rate_limited((client_ip, prefix)):
                logger.warning(
                    f"Rate limit exceeded for {client_ip} on {path} "
                    f"({settings.rate_limit_requests} requests per "
                    f"{settings.rate_limit_window_seconds}s)"
                )
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={
                        "error": "Rate limit exceeded",
                        "message": f"Too many requests. Limit: {settings.rate_limit_requests} "
                        f"requests per {settings.rate_limit_window_seconds} seconds.",
                        "retry_after": settings.rate_limit_window_seconds,
                    },
                    headers={"Retry-After": str(settings.rate_limit_window_seconds)},
                )
        return await call_next(request)
