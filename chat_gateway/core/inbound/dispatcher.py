"""
Inbound Dispatcher.

Decodes one frame from an active connection and routes the command.
Malformed frames are answered with an error event and the connection
keeps going.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat_gateway.components.core.context import sanitize_log_data
from chat_gateway.components.core.errors import ProtocolError
from chat_gateway.components.events.codec import decode_frame
from chat_gateway.components.events.types import (
    ErrorEvent,
    EventType,
    Ping,
    SendMessage,
    SetName,
    SetTyping,
)
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from chat_gateway.components.connection.registry import Handle
    from chat_gateway.components.metrics.collector import MetricsCollector
    from chat_gateway.core.connection.broadcaster import BroadcastEngine
    from chat_gateway.core.inbound.ingestion import MessageIngestion
    from chat_gateway.core.inbound.relay import PresenceRelay

logger = get_logger(__name__)

RENAME_UNAVAILABLE_TEXT = "Renaming is not available."


class InboundDispatcher:
    def __init__(
        self,
        ingestion: "MessageIngestion",
        relay: "PresenceRelay",
        broadcaster: "BroadcastEngine",
        metrics: "MetricsCollector",
    ) -> None:
        self._ingestion = ingestion
        self._relay = relay
        self._broadcaster = broadcaster
        self._metrics = metrics

    async def dispatch(self, handle: "Handle", data: str | bytes, allow_rename: bool) -> None:
        """
        Process one inbound frame.

        Args:
            handle: The originating connection.
            data: Raw frame (text, or bytes decoded as UTF-8).
            allow_rename: Whether set-name is accepted on this endpoint.
        """
        try:
            command = decode_frame(data)
        except ProtocolError as e:
            await self.report_error(handle, e.message, data)
            return

        if isinstance(command, SendMessage):
            await self._ingestion.ingest(handle, command.text)
        elif isinstance(command, SetTyping):
            await self._relay.typing(handle, command.is_typing)
        elif isinstance(command, SetName):
            if not allow_rename:
                await self.report_error(handle, RENAME_UNAVAILABLE_TEXT, data)
                return
            await self._relay.rename(handle, command.name)
        elif isinstance(command, Ping):
            await self._broadcaster.send_direct(handle, {"type": EventType.PONG.value})

    async def report_error(self, handle: "Handle", text: str, data: str | bytes | None = None) -> None:
        """Send a protocol error back to the originating connection only."""
        self._metrics.increment_protocol_errors()
        if data is not None:
            raw = data if isinstance(data, str) else repr(data)
            logger.debug("Protocol error", error=text, frame=sanitize_log_data(raw))
        await self._broadcaster.send_direct(handle, ErrorEvent(text))
