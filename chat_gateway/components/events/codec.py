"""
Event Protocol Codec.

One UTF-8 JSON object per frame in both directions. Outbound events are
encoded once per broadcast with compact separators; inbound frames are
decoded into commands with field coercion applied.
"""

from __future__ import annotations

import json
from typing import Any

from chat_gateway.components.core.errors import ProtocolError
from chat_gateway.components.events.types import (
    EventType,
    InboundCommand,
    OutboundEvent,
    Ping,
    SendMessage,
    SetName,
    SetTyping,
)

# Client-facing descriptions of malformed frames
INVALID_JSON = "Invalid JSON."
INVALID_ENVELOPE = "Invalid event envelope."
MISSING_TYPE = "Missing event type."


def encode_event(event: OutboundEvent | dict[str, Any]) -> str:
    """Serialize an outbound event to its wire text."""
    payload = event if isinstance(event, dict) else event.to_dict()
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def coerce_text(value: Any) -> str:
    """Missing or null becomes "", anything else goes through str()."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def decode_frame(data: str | bytes) -> InboundCommand:
    """
    Decode one inbound frame.

    Raises:
        ProtocolError: If the frame is not a JSON object with a known type.
    """
    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError(INVALID_JSON)

    try:
        payload = json.loads(data)
    except ValueError:
        raise ProtocolError(INVALID_JSON)

    if not isinstance(payload, dict):
        raise ProtocolError(INVALID_ENVELOPE)

    event_type = payload.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ProtocolError(MISSING_TYPE)

    if event_type == EventType.MESSAGE.value:
        return SendMessage(text=coerce_text(payload.get("text")))
    if event_type == EventType.TYPING.value:
        return SetTyping(is_typing=bool(payload.get("isTyping")))
    if event_type == EventType.SET_NAME.value:
        return SetName(name=coerce_text(payload.get("name")))
    if event_type == EventType.PING.value:
        return Ping()

    raise ProtocolError(f"Unknown event type: {event_type}.")
