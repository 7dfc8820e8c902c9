"""
Correlation ID middleware for request tracing.

Reads X-Correlation-ID from the incoming request (webhook relays forward it) or
generates a UUID4, and keeps it in a contextvar for the rest of the request:
SystemEvents pick it up automatically and CorrelationIdFilter stamps it onto
log records.
"""

import logging
import uuid
from collections.abc import Callable
from contextvars import ContextVar

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

HEADER_CORRELATION_ID = "X-Correlation-ID"
MAX_CORRELATION_ID_LENGTH = 128

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id(request: Request | None = None) -> str | None:
    """Prefers request.state, then the contextvar. None outside a request."""
    if request is not None and getattr(request.state, "correlation_id", None):
        return request.state.correlation_id
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str | None):
    """Set the contextvar (scheduler jobs, CLI runs). Returns the reset token."""
    return _correlation_id_var.set(correlation_id)


def reset_correlation_id(token) -> None:
    _correlation_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Adds record.correlation_id ("-" outside a request) for log formats."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id_var.get() or "-"
        return True


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable):
        incoming = (request.headers.get(HEADER_CORRELATION_ID) or "").strip()
        cid = incoming if incoming and len(incoming) <= MAX_CORRELATION_ID_LENGTH else str(uuid.uuid4())
        request.state.correlation_id = cid
        token = _correlation_id_var.set(cid)
        try:
            response = await call_next(request)
        finally:
            _correlation_id_var.reset(token)
        response.headers[HEADER_CORRELATION_ID] = cid
        return response
