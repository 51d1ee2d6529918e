"""
Request correlation IDs.

The HTTP middleware assigns one ID per request; every log line emitted while
handling that request can attach it via get_log_extra().
"""

import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

CORRELATION_HEADER = "X-Correlation-ID"

_correlation_id: ContextVar[Optional[str]] = ContextVar(
    "portfolio_audit_correlation_id", default=None
)


def get_correlation_id() -> Optional[str]:
    """Return the correlation ID of the current request, if any."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: Optional[str] = None) -> str:
    """Set (or generate) the correlation ID for the current context."""
    value = correlation_id or str(uuid.uuid4())
    _correlation_id.set(value)
    return value


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Propagate X-Correlation-ID from request to response."""

    async def dispatch(self, request: Request, call_next):
        correlation_id = set_correlation_id(request.headers.get(CORRELATION_HEADER))
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id
        return response
