"""
WebSocket Endpoint Mixins.

Each mixin handles a single concern for WebSocket endpoints.

Mixins:
    MessageValidationMixin: Inbound frame size checks
    OriginValidationMixin: WebSocket origin header validation
    ConnectionLifecycleMixin: Connect/disconnect/rejection logging

Usage:
    class MyEndpoint(MessageValidationMixin, OriginValidationMixin, WebSocketEndpointBase):
        ...
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from fastapi import WebSocket

from chat_gateway.components.core.constants import WSCloseCode, validate_websocket_origin
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from chat_gateway.connection_manager import ConnectionManager
    from chat_gateway.components.core.context import WebSocketContext

logger = get_logger(__name__)


# =============================================================================
# Protocols for mixin dependencies
# =============================================================================


class HasWebSocket(Protocol):
    """Protocol for classes with websocket attribute."""

    websocket: WebSocket
    endpoint_name: str
    context: "WebSocketContext | None"


class HasManager(Protocol):
    """Protocol for classes with manager attribute."""

    manager: "ConnectionManager"


# =============================================================================
# MessageValidationMixin
# =============================================================================


class MessageValidationMixin:
    """
    Mixin for inbound frame size validation.

    Requires:
        - self.websocket: WebSocket
        - self.manager: ConnectionManager
        - self.endpoint_name: str
        - self.context: WebSocketContext | None
    """

    async def validate_message_size(self: "HasWebSocket & HasManager", data: str | bytes) -> bool:
        """
        Validate frame size against ws_max_message_size.

        Returns:
            True if valid, False if too large (connection closed with 1009).
        """
        max_size = self.manager.settings.ws_max_message_size

        if len(data) > max_size:
            logger.warning(
                "Message size exceeded limit",
                endpoint=self.endpoint_name,
                identifier=self.context.identifier if self.context else "unknown",
                size=len(data),
                max_size=max_size,
            )
            self.manager.record_oversized_close()
            await self.websocket.close(
                code=WSCloseCode.MESSAGE_TOO_BIG,
                reason="Message too large",
            )
            return False
        return True


# =============================================================================
# OriginValidationMixin
# =============================================================================


class OriginValidationMixin:
    """
    Mixin for WebSocket origin header validation.

    Requires:
        - self.websocket: WebSocket
        - self.manager: ConnectionManager
    """

    def validate_origin(self: "HasWebSocket & HasManager") -> bool:
        """True if the Origin header is allowed by settings."""
        return validate_websocket_origin(self.get_origin(), self.manager.settings)

    def get_origin(self: HasWebSocket) -> str | None:
        """Get origin header from websocket."""
        return self.websocket.headers.get("origin")

    async def reject_origin(self: "HasWebSocket & HasManager") -> None:
        """Close before accept with FORBIDDEN and record the rejection."""
        origin = self.websocket.headers.get("origin")
        logger.warning("WebSocket connection rejected - invalid origin", origin=origin)
        if self.context:
            self.context.audit("AUTH_FAILED", reason="invalid_origin")
        self.manager.record_origin_rejection()
        await self.websocket.close(code=WSCloseCode.FORBIDDEN, reason="Origin not allowed")


# =============================================================================
# ConnectionLifecycleMixin
# =============================================================================


class ConnectionLifecycleMixin:
    """
    Mixin for connection lifecycle logging.

    Requires:
        - self.endpoint_name: str
        - self.context: WebSocketContext | None
    """

    def log_connect(self: HasWebSocket) -> None:
        """Log connection event."""
        endpoint_type = self.endpoint_name.split("/")[-1].title()
        logger.info(
            f"{endpoint_type} connected",
            **self.context.to_audit_dict("CONNECT") if self.context else {},
        )
        if self.context:
            self.context.audit("CONNECT")

    def log_disconnect(self: HasWebSocket, reason: str = "client_disconnect") -> None:
        """Log disconnection event."""
        endpoint_type = self.endpoint_name.split("/")[-1].title()
        logger.info(
            f"{endpoint_type} disconnected",
            **(
                self.context.to_audit_dict("DISCONNECT", reason=reason)
                if self.context
                else {}
            ),
        )
        if self.context:
            self.context.audit("DISCONNECT", reason=reason)

    def log_connect_rejected(self: HasWebSocket, reason: str) -> None:
        """Log connection rejection event."""
        logger.warning(
            "Connection rejected",
            endpoint=self.endpoint_name,
            identifier=self.context.identifier if self.context else "unknown",
            reason=reason,
        )
        if self.context:
            self.context.audit("CONNECT_REJECTED", reason=reason)


__all__ = [
    "MessageValidationMixin",
    "OriginValidationMixin",
    "ConnectionLifecycleMixin",
    # Protocols
    "HasWebSocket",
    "HasManager",
]
