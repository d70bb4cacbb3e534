"""
Message Ingestion.

persist -> (ok) broadcast to everyone, sender included
        -> (failure) error event to the sender only

Nothing is relayed that was not stored first. The timestamp is taken from
the server clock at ingestion; the sender's id and name come from the
registry, never from the client frame.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, TYPE_CHECKING

from chat_gateway.components.core.context import sanitize_log_data
from chat_gateway.components.core.errors import MessageStoreError, PersistResult
from chat_gateway.components.events.types import ErrorEvent, MessageEvent
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from chat_gateway.components.connection.registry import ConnectionRegistry, Handle, Identity
    from chat_gateway.components.data.message_store import MessageStore
    from chat_gateway.components.metrics.collector import MetricsCollector
    from chat_gateway.core.connection.broadcaster import BroadcastEngine

logger = get_logger(__name__)

PERSIST_FAILED_TEXT = "Message could not be delivered. Please try again."


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageIngestion:
    def __init__(
        self,
        registry: "ConnectionRegistry",
        broadcaster: "BroadcastEngine",
        store: "MessageStore",
        metrics: "MetricsCollector",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._registry = registry
        self._broadcaster = broadcaster
        self._store = store
        self._metrics = metrics
        self._clock = clock

    async def ingest(self, handle: "Handle", text: str) -> PersistResult | None:
        """
        Handle one inbound chat message.

        Returns:
            None if the message was dropped (empty, or sender not registered),
            otherwise the PersistResult that decided whether it was relayed.
        """
        text = text.strip()
        if not text:
            self._metrics.increment_empty_dropped()
            return None

        identity = self._registry.get_identity(handle)
        if identity is None:
            logger.warning("Message from unregistered connection dropped")
            return None

        created_at = self._clock()
        result = await self._persist(identity, text, created_at)
        if not result.ok:
            self._metrics.increment_persist_failed()
            logger.warning(
                "Message not relayed: persistence failed",
                user_id=identity.id,
                reason=result.reason,
                text=sanitize_log_data(text),
            )
            await self._broadcaster.send_direct(handle, ErrorEvent(PERSIST_FAILED_TEXT))
            return result

        self._metrics.increment_messages_persisted()
        await self._broadcaster.broadcast_all(MessageEvent(
            sender_id=identity.id,
            sender_name=identity.display_name,
            text=text,
            at=int(created_at.timestamp() * 1000),
        ))
        return result

    async def _persist(self, identity: "Identity", text: str, created_at: datetime) -> PersistResult:
        try:
            await self._store.append(identity.id, identity.display_name, text, created_at)
        except MessageStoreError as e:
            return PersistResult.failure(str(e))
        return PersistResult.success()
