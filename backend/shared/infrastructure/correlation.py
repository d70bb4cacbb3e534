"""
Request and connection correlation.

Adds a correlation ID to every HTTP request and WebSocket connection so
log lines emitted while serving it can be grouped together.
"""

import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for the active correlation ID (task-local)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation ID."""
    return correlation_id_var.get()


def new_correlation_id() -> str:
    """Generate and bind a fresh correlation ID for the current task."""
    correlation_id = uuid.uuid4().hex
    correlation_id_var.set(correlation_id)
    return correlation_id


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation IDs to HTTP requests.

    - If X-Request-ID header is present, uses that value
    - Otherwise generates a new UUID
    - Sets the ID in context for logging
    - Returns the ID in response headers

    WebSocket scopes are not routed through BaseHTTPMiddleware; WebSocket
    endpoints bind their own ID with new_correlation_id().
    """

    HEADER_NAME = "X-Request-ID"

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        request_id = request.headers.get(self.HEADER_NAME)
        if not request_id:
            request_id = uuid.uuid4().hex

        token = correlation_id_var.set(request_id)

        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[self.HEADER_NAME] = request_id
            return response
        finally:
            correlation_id_var.reset(token)


class CorrelationIdFilter:
    """
    Logging filter that adds correlation_id to log records.

    Usage:
        import logging
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True
