"""
Connection components.

Registry of active connections, guest name generation and heartbeat.
"""

from chat_gateway.components.connection.registry import (
    ConnectionRegistry,
    Identity,
    sanitize_display_name,
)
from chat_gateway.components.connection.guest_names import GuestNameGenerator
from chat_gateway.components.connection.heartbeat import handle_heartbeat, is_heartbeat

__all__ = [
    "ConnectionRegistry",
    "Identity",
    "sanitize_display_name",
    "GuestNameGenerator",
    "handle_heartbeat",
    "is_heartbeat",
]
