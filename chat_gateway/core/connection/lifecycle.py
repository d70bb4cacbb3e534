"""
Session Lifecycle.

Per-connection state machine:

    CONNECTING -> AUTHORIZING -> ACTIVE -> CLOSED
                             \-> CLOSED   (rejected, nothing registered)

On activation the connection is registered, then receives welcome,
history and the system greeting directly, and only then is its join
broadcast to everyone (itself included). On deactivation the handle is
deregistered and, if it was registered, a leave is broadcast exactly once.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from chat_gateway.components.core.constants import WSConstants
from chat_gateway.components.core.errors import MessageStoreError
from chat_gateway.components.events.types import (
    HistoryEvent,
    MessageEvent,
    PresenceAction,
    PresenceEvent,
    SystemEvent,
    WelcomeEvent,
)
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from chat_gateway.components.connection.guest_names import GuestNameGenerator
    from chat_gateway.components.connection.registry import ConnectionRegistry, Handle, Identity
    from chat_gateway.components.data.message_store import MessageStore
    from chat_gateway.components.metrics.collector import MetricsCollector
    from chat_gateway.core.connection.broadcaster import BroadcastEngine

logger = get_logger(__name__)


class SessionState(str, Enum):
    CONNECTING = "connecting"
    AUTHORIZING = "authorizing"
    ACTIVE = "active"
    CLOSED = "closed"


class SessionLifecycle:
    """
    Orchestrates connect and disconnect for every connection.

    Responsibilities:
    - Track each handle's SessionState
    - Register/deregister through the ConnectionRegistry
    - Send the welcome sequence and announce join/leave
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        broadcaster: "BroadcastEngine",
        store: "MessageStore",
        metrics: "MetricsCollector",
        guest_names: "GuestNameGenerator",
        history_limit: int = WSConstants.HISTORY_LIMIT,
        greeting_text: str = "Connected to chat server.",
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._store = store
        self._metrics = metrics
        self._guest_names = guest_names
        self._history_limit = min(history_limit, WSConstants.HISTORY_LIMIT)
        self._greeting_text = greeting_text
        self._states: dict["Handle", SessionState] = {}
        self._guests: set["Handle"] = set()
        self._shutdown = False

    @property
    def is_shutdown(self) -> bool:
        return self._shutdown

    def set_shutdown(self, value: bool) -> None:
        self._shutdown = value

    @property
    def guest_count(self) -> int:
        return len(self._guests)

    def state_of(self, handle: "Handle") -> SessionState | None:
        return self._states.get(handle)

    def begin(self, handle: "Handle") -> None:
        """Physical connection established; nothing accepted yet."""
        self._states[handle] = SessionState.CONNECTING

    def authorizing(self, handle: "Handle") -> None:
        self._states[handle] = SessionState.AUTHORIZING

    def reject(self, handle: "Handle") -> None:
        """Authorization failed: close without registering or broadcasting."""
        self._states.pop(handle, None)

    async def activate(self, handle: "Handle", identity: "Identity") -> "Identity":
        """
        Register an authenticated identity and announce it.

        Raises:
            ConnectionError: If the gateway is shutting down.
            DuplicateConnectionError: If the handle is already registered.
        """
        if self._shutdown:
            raise ConnectionError("Server is shutting down")
        await self._registry.register(handle, identity)
        await self._announce(handle, identity)
        return identity

    async def activate_guest(self, handle: "Handle") -> "Identity":
        """
        Register a generated guest identity and announce it.

        Name generation and insert happen under the registry lock so two
        guests connecting at once see each other's names.
        """
        if self._shutdown:
            raise ConnectionError("Server is shutting down")
        identity = await self._registry.register_guest(handle, self._guest_names.new_identity)
        self._guests.add(handle)
        await self._announce(handle, identity)
        return identity

    async def deactivate(self, handle: "Handle") -> "Identity | None":
        """
        Deregister and broadcast leave.

        Safe to call more than once; only the call that actually removed
        the entry broadcasts.
        """
        self._states[handle] = SessionState.CLOSED
        identity = await self._registry.deregister(handle)
        self._guests.discard(handle)
        self._states.pop(handle, None)
        if identity is None:
            return None

        await self._broadcaster.broadcast_all(PresenceEvent(PresenceAction.LEAVE, identity))
        return identity

    async def _announce(self, handle: "Handle", identity: "Identity") -> None:
        # Direct sends first: the new connection must have context before
        # it sees its own join.
        await self._broadcaster.send_direct(handle, WelcomeEvent(identity))
        await self._broadcaster.send_direct(handle, await self._history())
        await self._broadcaster.send_direct(handle, SystemEvent(self._greeting_text))

        self._states[handle] = SessionState.ACTIVE
        self._metrics.increment_connections_accepted()

        await self._broadcaster.broadcast_all(PresenceEvent(PresenceAction.JOIN, identity))

    async def _history(self) -> HistoryEvent:
        try:
            stored = await self._store.recent(self._history_limit)
        except MessageStoreError as e:
            logger.warning("History unavailable, sending empty history", error=str(e))
            return HistoryEvent()
        return HistoryEvent(tuple(
            MessageEvent(
                sender_id=m.sender_id,
                sender_name=m.sender_name,
                text=m.text,
                at=m.at_ms,
            )
            for m in stored
        ))
