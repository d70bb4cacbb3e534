"""
Concrete WebSocket Endpoint Implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import WebSocket

from chat_gateway.components.auth.resolvers import (
    ConnectionCredentials,
    IdentityResolver,
    SessionTokenResolver,
)
from chat_gateway.components.core.constants import WSCloseCode
from chat_gateway.components.core.errors import IdentityRejected
from chat_gateway.components.endpoints.base import WebSocketEndpointBase
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from chat_gateway.connection_manager import ConnectionManager
    from chat_gateway.components.connection.registry import Identity

logger = get_logger(__name__)


class GuestEndpoint(WebSocketEndpointBase):
    """
    Anonymous chat endpoint.

    Features:
    - No credentials: every connection gets a generated "Guest-XXXX" name
    - set-name renames the connection for everyone
    """

    allow_rename = True
    is_guest = True

    def __init__(self, websocket: WebSocket, manager: "ConnectionManager"):
        super().__init__(
            websocket=websocket,
            manager=manager,
            endpoint_name="/ws/guest",
        )

    async def authorize(self) -> bool:
        if not self.validate_origin():
            await self.reject_origin()
            return False
        return True

    async def register_connection(self) -> "Identity":
        return await self.manager.activate_guest(self.websocket)


class MemberEndpoint(WebSocketEndpointBase):
    """
    Authenticated chat endpoint.

    Features:
    - Session token from the `token` query parameter or the session cookie
    - Rejected before accept (4001) when the token is missing or invalid
    - Display name fixed to the account's username; no rename
    """

    def __init__(
        self,
        websocket: WebSocket,
        manager: "ConnectionManager",
        resolver: IdentityResolver | None = None,
    ):
        super().__init__(
            websocket=websocket,
            manager=manager,
            endpoint_name="/ws/chat",
        )
        self.resolver = resolver or SessionTokenResolver(manager.settings)
        self._resolved: "Identity | None" = None

    async def authorize(self) -> bool:
        if not self.validate_origin():
            await self.reject_origin()
            return False

        credentials = ConnectionCredentials.from_websocket(
            self.websocket,
            cookie_name=self.manager.settings.session_cookie_name,
        )
        try:
            self._resolved = await self.resolver.resolve(credentials)
        except IdentityRejected as e:
            logger.warning(
                "WebSocket session validation failed",
                reason=e.reason,
                origin=self.get_origin(),
            )
            if self.context:
                self.context.audit("AUTH_FAILED", reason=e.reason)
            self.manager.record_auth_rejection()
            await self.websocket.close(
                code=WSCloseCode.AUTH_FAILED,
                reason="Authentication failed",
            )
            return False
        return True

    async def register_connection(self) -> "Identity":
        if self._resolved is None:
            raise ConnectionError("Connection was not authorized")
        return await self.manager.activate(self.websocket, self._resolved)
