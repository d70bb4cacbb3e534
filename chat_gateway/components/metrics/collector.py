"""
Metrics Collector for the chat gateway.

Thread-safe counters for observability. All increments are synchronous
and guarded by a threading.Lock so they can be called from the hot path
without awaiting.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any


@dataclass
class BroadcastMetrics:
    """Metrics for broadcast operations."""
    total: int = 0
    failed: int = 0
    recipients_failed: int = 0


@dataclass
class ConnectionMetrics:
    """Metrics for connection management."""
    accepted: int = 0
    rejected_auth: int = 0
    rejected_origin: int = 0
    closed_oversized: int = 0


@dataclass
class MessageMetrics:
    """Metrics for inbound traffic."""
    persisted: int = 0
    persist_failed: int = 0
    empty_dropped: int = 0
    protocol_errors: int = 0
    typing_relayed: int = 0
    renames: int = 0


class MetricsCollector:
    """
    Thread-safe metrics collector.

    Usage:
        metrics = MetricsCollector()
        metrics.increment_broadcast_total()
        stats = metrics.get_snapshot()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._broadcast = BroadcastMetrics()
        self._connection = ConnectionMetrics()
        self._message = MessageMetrics()

    # ==========================================================================
    # Broadcast Metrics
    # ==========================================================================

    def increment_broadcast_total(self) -> None:
        with self._lock:
            self._broadcast.total += 1

    def increment_broadcast_failed(self) -> None:
        """Count a broadcast where at least one recipient failed."""
        with self._lock:
            self._broadcast.failed += 1

    def add_failed_recipients(self, count: int) -> None:
        with self._lock:
            self._broadcast.recipients_failed += count

    # ==========================================================================
    # Connection Metrics
    # ==========================================================================

    def increment_connections_accepted(self) -> None:
        with self._lock:
            self._connection.accepted += 1

    def increment_connection_rejected_auth(self) -> None:
        with self._lock:
            self._connection.rejected_auth += 1

    def increment_connection_rejected_origin(self) -> None:
        with self._lock:
            self._connection.rejected_origin += 1

    def increment_closed_oversized(self) -> None:
        with self._lock:
            self._connection.closed_oversized += 1

    # ==========================================================================
    # Message Metrics
    # ==========================================================================

    def increment_messages_persisted(self) -> None:
        with self._lock:
            self._message.persisted += 1

    def increment_persist_failed(self) -> None:
        with self._lock:
            self._message.persist_failed += 1

    def increment_empty_dropped(self) -> None:
        with self._lock:
            self._message.empty_dropped += 1

    def increment_protocol_errors(self) -> None:
        with self._lock:
            self._message.protocol_errors += 1

    def increment_typing_relayed(self) -> None:
        with self._lock:
            self._message.typing_relayed += 1

    def increment_renames(self) -> None:
        with self._lock:
            self._message.renames += 1

    # ==========================================================================
    # Snapshot
    # ==========================================================================

    def get_snapshot(self) -> dict[str, Any]:
        """
        Copy of all counters.

        Names follow {category}_{metric} with a plural category.
        """
        with self._lock:
            return {
                "broadcasts_total": self._broadcast.total,
                "broadcasts_failed": self._broadcast.failed,
                "broadcasts_failed_recipients": self._broadcast.recipients_failed,
                "connections_accepted": self._connection.accepted,
                "connections_rejected_auth": self._connection.rejected_auth,
                "connections_rejected_origin": self._connection.rejected_origin,
                "connections_closed_oversized": self._connection.closed_oversized,
                "messages_persisted": self._message.persisted,
                "messages_persist_failed": self._message.persist_failed,
                "messages_empty_dropped": self._message.empty_dropped,
                "messages_protocol_errors": self._message.protocol_errors,
                "messages_typing_relayed": self._message.typing_relayed,
                "messages_renames": self._message.renames,
            }

    def reset(self) -> dict[str, Any]:
        """Reset all counters and return the previous values."""
        snapshot = self.get_snapshot()
        with self._lock:
            self._broadcast = BroadcastMetrics()
            self._connection = ConnectionMetrics()
            self._message = MessageMetrics()
        return snapshot
