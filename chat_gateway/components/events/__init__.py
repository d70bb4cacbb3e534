"""
Event handling components.

Outbound event types, inbound commands and the JSON frame codec.
"""

from chat_gateway.components.events.types import (
    EventType,
    PresenceAction,
    WelcomeEvent,
    HistoryEvent,
    SystemEvent,
    PresenceEvent,
    MessageEvent,
    TypingEvent,
    ErrorEvent,
    SendMessage,
    SetTyping,
    SetName,
    Ping,
    now_ms,
)
from chat_gateway.components.events.codec import decode_frame, encode_event

__all__ = [
    # Event types
    "EventType",
    "PresenceAction",
    "WelcomeEvent",
    "HistoryEvent",
    "SystemEvent",
    "PresenceEvent",
    "MessageEvent",
    "TypingEvent",
    "ErrorEvent",
    # Inbound commands
    "SendMessage",
    "SetTyping",
    "SetName",
    "Ping",
    "now_ms",
    # Codec
    "decode_frame",
    "encode_event",
]
