"""
Outbound delivery and session lifecycle.
"""

from chat_gateway.core.connection.broadcaster import BroadcastEngine, is_ws_connected
from chat_gateway.core.connection.lifecycle import SessionLifecycle, SessionState

__all__ = [
    "BroadcastEngine",
    "is_ws_connected",
    "SessionLifecycle",
    "SessionState",
]
