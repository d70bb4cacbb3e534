"""
Broadcast Engine.

Delivers one event to a subset of the registered connections: everyone,
everyone except one handle, or a single handle. The event is serialized
once per call. Recipients are taken from one registry snapshot, so a
handle is never sent the same event twice and never after it was
deregistered before the call.

Delivery failures are absorbed here. A broken peer's own receive loop
notices the closed transport and deregisters it.
"""

from __future__ import annotations

import asyncio
from typing import Any, TYPE_CHECKING

from starlette.websockets import WebSocketState

from chat_gateway.components.core.constants import WSConstants
from chat_gateway.components.events.codec import encode_event
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from fastapi import WebSocket
    from chat_gateway.components.connection.registry import ConnectionRegistry, Handle
    from chat_gateway.components.events.types import OutboundEvent
    from chat_gateway.components.metrics.collector import MetricsCollector

logger = get_logger(__name__)


def is_ws_connected(ws: "WebSocket") -> bool:
    """
    Check if WebSocket is in connected state before sending.

    Starlette WebSockets only expose CONNECTING, CONNECTED and DISCONNECTED,
    so a connection may still look connected briefly after the peer left.
    """
    return (
        ws.client_state == WebSocketState.CONNECTED
        and ws.application_state == WebSocketState.CONNECTED
    )


class BroadcastEngine:
    """
    Fan-out of serialized events to registered connections.

    Sends within a batch run concurrently, each bounded by send_timeout, so
    one slow peer delays the rest by at most that timeout.
    """

    def __init__(
        self,
        registry: "ConnectionRegistry",
        metrics: "MetricsCollector",
        send_timeout: float = WSConstants.WS_SEND_TIMEOUT,
        batch_size: int = 50,
    ) -> None:
        """
        Args:
            registry: Source of recipients.
            metrics: Collects broadcast metrics.
            send_timeout: Per-peer bound on one send.
            batch_size: Number of concurrent sends per batch.
        """
        self._registry = registry
        self._metrics = metrics
        self._send_timeout = send_timeout
        self._batch_size = batch_size

    async def send_direct(self, ws: "WebSocket", event: "OutboundEvent | dict[str, Any]") -> bool:
        """Send an event to one connection, registered or not."""
        return await self._send_text(ws, encode_event(event))

    async def broadcast_all(self, event: "OutboundEvent") -> int:
        """Send to every registered connection. Returns the number reached."""
        text = encode_event(event)
        entries = await self._registry.snapshot()
        return await self._fan_out([handle for handle, _ in entries], text, "all")

    async def broadcast_except(self, event: "OutboundEvent", excluded: "Handle") -> int:
        """Send to every registered connection except `excluded`."""
        text = encode_event(event)
        entries = await self._registry.snapshot()
        handles = [handle for handle, _ in entries if handle is not excluded]
        return await self._fan_out(handles, text, "except")

    async def _send_text(self, ws: "WebSocket", text: str) -> bool:
        """Send to a single connection, returning success status."""
        if not is_ws_connected(ws):
            return False
        try:
            await asyncio.wait_for(ws.send_text(text), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.debug("Send timed out", timeout=self._send_timeout)
            return False
        except Exception as e:
            logger.debug("Send failed", error=str(e))
            return False

    async def _fan_out(self, connections: list["WebSocket"], text: str, context: str) -> int:
        if not connections:
            return 0

        sent = 0
        failed = 0
        for i in range(0, len(connections), self._batch_size):
            batch = connections[i : i + self._batch_size]
            results = await asyncio.gather(
                *[self._send_text(ws, text) for ws in batch],
                return_exceptions=True,
            )
            for idx, result in enumerate(results):
                if result is True:
                    sent += 1
                else:
                    failed += 1
                    if isinstance(result, Exception):
                        logger.debug(
                            "Batch send exception",
                            context=context,
                            batch_index=idx,
                            error=str(result),
                        )

        self._metrics.increment_broadcast_total()
        if failed > 0:
            self._metrics.increment_broadcast_failed()
            self._metrics.add_failed_recipients(failed)
            logger.debug(
                "Broadcast completed with failures",
                context=context,
                sent=sent,
                failed=failed,
                total=len(connections),
            )

        return sent
