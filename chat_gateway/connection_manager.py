"""
Chat Connection Manager.

Thin orchestrator that composes the gateway components:
- ConnectionRegistry: who is online
- BroadcastEngine: fan-out to registered connections
- SessionLifecycle: connect/disconnect sequencing
- MessageIngestion / PresenceRelay / InboundDispatcher: inbound frames
- MetricsCollector: counters for health and Prometheus

Endpoints only talk to this class.
"""

from __future__ import annotations

import asyncio
from typing import Any, TYPE_CHECKING

from chat_gateway.components.connection.guest_names import GuestNameGenerator
from chat_gateway.components.connection.registry import ConnectionRegistry
from chat_gateway.components.core.constants import WSCloseCode
from chat_gateway.components.metrics.collector import MetricsCollector
from chat_gateway.core.connection.broadcaster import BroadcastEngine
from chat_gateway.core.connection.lifecycle import SessionLifecycle
from chat_gateway.core.inbound.dispatcher import InboundDispatcher
from chat_gateway.core.inbound.ingestion import MessageIngestion
from chat_gateway.core.inbound.relay import PresenceRelay
from shared.config.logging import get_logger
from shared.config.settings import Settings

if TYPE_CHECKING:
    from fastapi import WebSocket
    from chat_gateway.components.connection.registry import Identity
    from chat_gateway.components.data.message_store import MessageStore
    from chat_gateway.components.events.types import OutboundEvent

logger = get_logger(__name__)


class ConnectionManager:
    """
    Manages chat connections for one room shared by both endpoints.

    Configuration from settings:
    - history_limit: messages replayed on join (max 100)
    - display_name_max_length / fallback_display_name: rename clamping
    - guest_name_*: guest name generation
    - greeting_text: system greeting sent on join
    - ws_send_timeout: per-peer bound on one send
    """

    def __init__(self, settings: Settings, store: "MessageStore") -> None:
        self._settings = settings
        self._store = store
        self._metrics = MetricsCollector()
        self._registry = ConnectionRegistry(
            max_name_length=settings.display_name_max_length,
            fallback_name=settings.fallback_display_name,
        )
        self._broadcaster = BroadcastEngine(
            registry=self._registry,
            metrics=self._metrics,
            send_timeout=settings.ws_send_timeout,
        )
        self._guest_names = GuestNameGenerator(
            prefix=settings.guest_name_prefix,
            suffix_length=settings.guest_name_suffix_length,
            charset=settings.guest_name_charset,
            max_attempts=settings.guest_name_max_attempts,
        )
        self._lifecycle = SessionLifecycle(
            registry=self._registry,
            broadcaster=self._broadcaster,
            store=store,
            metrics=self._metrics,
            guest_names=self._guest_names,
            history_limit=settings.history_limit,
            greeting_text=settings.greeting_text,
        )
        self._ingestion = MessageIngestion(
            registry=self._registry,
            broadcaster=self._broadcaster,
            store=store,
            metrics=self._metrics,
        )
        self._relay = PresenceRelay(
            registry=self._registry,
            broadcaster=self._broadcaster,
            metrics=self._metrics,
        )
        self._dispatcher = InboundDispatcher(
            ingestion=self._ingestion,
            relay=self._relay,
            broadcaster=self._broadcaster,
            metrics=self._metrics,
        )

    # =========================================================================
    # Public properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> "MessageStore":
        return self._store

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def lifecycle(self) -> SessionLifecycle:
        return self._lifecycle

    @property
    def total_connections(self) -> int:
        """Number of registered connections."""
        return self._registry.count()

    # =========================================================================
    # Lifecycle (delegate to lifecycle)
    # =========================================================================

    def begin(self, websocket: "WebSocket") -> None:
        self._lifecycle.begin(websocket)

    def authorizing(self, websocket: "WebSocket") -> None:
        self._lifecycle.authorizing(websocket)

    def reject(self, websocket: "WebSocket") -> None:
        self._lifecycle.reject(websocket)

    async def activate(self, websocket: "WebSocket", identity: "Identity") -> "Identity":
        """Register an authenticated connection and announce it."""
        return await self._lifecycle.activate(websocket, identity)

    async def activate_guest(self, websocket: "WebSocket") -> "Identity":
        """Register an anonymous connection under a generated name."""
        return await self._lifecycle.activate_guest(websocket)

    async def deactivate(self, websocket: "WebSocket") -> "Identity | None":
        """Deregister a connection and announce its departure."""
        return await self._lifecycle.deactivate(websocket)

    # =========================================================================
    # Inbound (delegate to dispatcher)
    # =========================================================================

    async def dispatch(self, websocket: "WebSocket", data: str | bytes, allow_rename: bool) -> None:
        await self._dispatcher.dispatch(websocket, data, allow_rename)

    async def report_error(self, websocket: "WebSocket", text: str) -> None:
        await self._dispatcher.report_error(websocket, text)

    # =========================================================================
    # Outbound (delegate to broadcaster)
    # =========================================================================

    async def send_direct(self, websocket: "WebSocket", event: "OutboundEvent") -> bool:
        return await self._broadcaster.send_direct(websocket, event)

    async def broadcast(self, event: "OutboundEvent") -> int:
        """Send an event to every registered connection."""
        return await self._broadcaster.broadcast_all(event)

    # =========================================================================
    # Metrics hooks for endpoints
    # =========================================================================

    def record_auth_rejection(self) -> None:
        self._metrics.increment_connection_rejected_auth()

    def record_origin_rejection(self) -> None:
        self._metrics.increment_connection_rejected_origin()

    def record_oversized_close(self) -> None:
        self._metrics.increment_closed_oversized()

    # =========================================================================
    # Statistics
    # =========================================================================

    def get_stats_sync(self) -> dict[str, Any]:
        """Connection statistics (sync version for health check)."""
        return {
            "total_connections": self._registry.count(),
            "guest_connections": self._lifecycle.guest_count,
            "history_limit": self._settings.history_limit,
            "metrics": self._metrics.get_snapshot(),
        }

    async def get_stats(self) -> dict[str, Any]:
        """Connection statistics including the display names online."""
        stats = self.get_stats_sync()
        stats["users_online"] = len(await self._registry.display_names())
        return stats

    async def store_health(self) -> dict[str, Any]:
        try:
            return await self._store.health()
        except Exception as e:
            logger.warning("Message store health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> int:
        """Graceful shutdown - close all connections."""
        self._lifecycle.set_shutdown(True)
        logger.info("Chat gateway shutting down...")

        entries = await self._registry.snapshot()
        connections = [handle for handle, _ in entries]

        async def close_one(ws: "WebSocket") -> bool:
            try:
                await ws.close(code=WSCloseCode.GOING_AWAY, reason="Server shutdown")
                return True
            except Exception:
                return False

        results = await asyncio.gather(
            *[close_one(ws) for ws in connections],
            return_exceptions=True,
        )
        closed = sum(1 for r in results if r is True)

        for ws in connections:
            try:
                await self.deactivate(ws)
            except Exception as e:
                logger.warning("Error deregistering during shutdown", error=str(e))

        logger.info("Chat gateway shutdown complete", closed=closed)
        return closed

    def is_shutting_down(self) -> bool:
        return self._lifecycle.is_shutdown
