"""
WebSocket endpoint components.

Base class, single-concern mixins and the two chat endpoints.
"""

from chat_gateway.components.endpoints.base import WebSocketEndpointBase
from chat_gateway.components.endpoints.mixins import (
    MessageValidationMixin,
    OriginValidationMixin,
    ConnectionLifecycleMixin,
)
from chat_gateway.components.endpoints.handlers import GuestEndpoint, MemberEndpoint

__all__ = [
    "WebSocketEndpointBase",
    "MessageValidationMixin",
    "OriginValidationMixin",
    "ConnectionLifecycleMixin",
    "GuestEndpoint",
    "MemberEndpoint",
]
