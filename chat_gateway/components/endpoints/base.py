"""
WebSocket Endpoint Base Class.

Provides the connection lifecycle shared by the anonymous and the
authenticated chat endpoints.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from fastapi import WebSocket, WebSocketDisconnect

from chat_gateway.components.connection.heartbeat import handle_heartbeat
from chat_gateway.components.core.constants import WSCloseCode
from chat_gateway.components.core.context import WebSocketContext
from chat_gateway.components.core.errors import DuplicateConnectionError
from chat_gateway.components.endpoints.mixins import (
    ConnectionLifecycleMixin,
    MessageValidationMixin,
    OriginValidationMixin,
)
from shared.config.logging import get_logger
from shared.infrastructure.correlation import new_correlation_id

if TYPE_CHECKING:
    from chat_gateway.connection_manager import ConnectionManager
    from chat_gateway.components.connection.registry import Identity

logger = get_logger(__name__)


class WebSocketEndpointBase(
    MessageValidationMixin,
    OriginValidationMixin,
    ConnectionLifecycleMixin,
    ABC,
):
    """
    Base class for chat WebSocket endpoints.

    Encapsulates common patterns:
    - Origin check and authorization before accept
    - Accept, register and welcome sequence
    - Receive loop with size validation and heartbeat handling
    - Deregistration on every exit path

    Subclasses implement:
    - authorize(): decide before accept (close and return False to reject)
    - register_connection(): promote to active through the ConnectionManager

    Usage:
        endpoint = GuestEndpoint(websocket, manager)
        await endpoint.run()
    """

    # Whether set-name frames are honoured on this endpoint
    allow_rename: bool = False
    is_guest: bool = False

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        endpoint_name: str,
    ):
        """
        Args:
            websocket: The WebSocket connection.
            manager: ConnectionManager instance.
            endpoint_name: Name for logging (e.g., "/ws/guest").
        """
        self.websocket = websocket
        self.manager = manager
        self.endpoint_name = endpoint_name

        self.context: WebSocketContext | None = None
        self.identity: "Identity | None" = None

    @abstractmethod
    async def authorize(self) -> bool:
        """
        Decide whether this connection may be accepted.

        Runs before accept. On refusal the implementation closes the
        WebSocket with the appropriate code and returns False.
        """

    @abstractmethod
    async def register_connection(self) -> "Identity":
        """
        Register with the ConnectionManager and send the welcome sequence.

        Raises:
            ConnectionError: If the gateway is shutting down.
        """

    async def handle_message(self, data: str | bytes) -> None:
        """Handle a non-heartbeat frame."""
        await self.manager.dispatch(self.websocket, data, allow_rename=self.allow_rename)

    async def run(self) -> None:
        """
        Main entry point - run the WebSocket endpoint.

        Handles the complete lifecycle:
        1. Authorize (origin, credentials) before accept
        2. Accept
        3. Register and announce
        4. Message loop
        5. Deregister on disconnect
        """
        connection_id = new_correlation_id()
        self.context = WebSocketContext.from_websocket(
            self.websocket, self.endpoint_name, connection_id=connection_id
        )
        self.manager.begin(self.websocket)

        # Step 1: Authorize
        self.manager.authorizing(self.websocket)
        if not await self.authorize():
            self.manager.reject(self.websocket)
            return

        # Step 2: Accept
        try:
            await asyncio.wait_for(
                self.websocket.accept(),
                timeout=self.manager.settings.ws_accept_timeout,
            )
        except asyncio.TimeoutError:
            self.manager.reject(self.websocket)
            self.log_connect_rejected("accept_timeout")
            return
        except Exception as e:
            self.manager.reject(self.websocket)
            self.log_connect_rejected(f"accept_failed: {type(e).__name__}")
            return

        # Steps 3-5
        try:
            try:
                self.identity = await self.register_connection()
            except ConnectionError as e:
                self.log_connect_rejected(str(e))
                await self._close_quietly(WSCloseCode.GOING_AWAY, "Server shutdown")
                return
            except DuplicateConnectionError as e:
                logger.error("Duplicate registration", endpoint=self.endpoint_name, error=str(e))
                await self._close_quietly(WSCloseCode.SERVER_ERROR, "Internal error")
                return

            self.context.bind_identity(self.identity, is_guest=self.is_guest)
            self.log_connect()

            await self._message_loop()
        except WebSocketDisconnect:
            self.log_disconnect("client_disconnect")
        except RuntimeError as e:
            # Starlette raises RuntimeError when the socket was closed under us
            self.log_disconnect(f"transport_closed: {e}")
        finally:
            await self.manager.deactivate(self.websocket)

    async def _message_loop(self) -> None:
        """
        Main message processing loop.

        Frames are handled strictly in receipt order. Text and binary
        frames are both accepted; binary frames are decoded as UTF-8.
        """
        while True:
            message = await self.websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", WSCloseCode.NORMAL))

            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            if data is None:
                continue

            if not await self.validate_message_size(data):
                self.log_disconnect("message_too_big")
                break

            if isinstance(data, str) and await handle_heartbeat(self.websocket, data):
                continue

            await self.handle_message(data)

    async def _close_quietly(self, code: int, reason: str) -> None:
        try:
            await self.websocket.close(code=code, reason=reason)
        except RuntimeError:
            pass
