"""
Typing and presence relay.

Typing indicators are relayed to everyone except the sender and never
stored; the server keeps no typing state, so a client that disconnects
while typing leaves no stop signal behind. Renames update the registry
and are announced to everyone.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat_gateway.components.core.context import sanitize_log_data
from chat_gateway.components.core.errors import ConnectionNotFoundError
from chat_gateway.components.events.types import PresenceAction, PresenceEvent, TypingEvent
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from chat_gateway.components.connection.registry import ConnectionRegistry, Handle, Identity
    from chat_gateway.components.metrics.collector import MetricsCollector
    from chat_gateway.core.connection.broadcaster import BroadcastEngine

logger = get_logger(__name__)


class PresenceRelay:
    def __init__(
        self,
        registry: "ConnectionRegistry",
        broadcaster: "BroadcastEngine",
        metrics: "MetricsCollector",
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._metrics = metrics

    async def typing(self, handle: "Handle", is_typing: bool) -> int:
        """Relay a typing indicator to every other connection."""
        identity = self._registry.get_identity(handle)
        if identity is None:
            return 0
        self._metrics.increment_typing_relayed()
        return await self._broadcaster.broadcast_except(
            TypingEvent(identity, bool(is_typing)),
            handle,
        )

    async def rename(self, handle: "Handle", name: str) -> "Identity | None":
        """Change a connection's display name and announce it to everyone."""
        try:
            identity = await self._registry.rename(handle, name)
        except ConnectionNotFoundError:
            logger.debug("Rename for unregistered connection ignored")
            return None

        self._metrics.increment_renames()
        logger.info(
            "Display name changed",
            user_id=identity.id,
            name=sanitize_log_data(identity.display_name),
        )
        await self._broadcaster.broadcast_all(PresenceEvent(PresenceAction.RENAME, identity))
        return identity
