"""
Event Value Objects for the chat protocol.

Outbound events are immutable dataclasses rendered to the flat wire
shape with to_dict(). Inbound commands are the decoded, coerced form of
client frames; see codec.decode_frame().
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from chat_gateway.components.connection.registry import Identity


class EventType(str, Enum):
    """Values of the `type` field carried by every frame."""

    # Outbound
    WELCOME = "welcome"
    HISTORY = "history"
    SYSTEM = "system"
    PRESENCE = "presence"
    MESSAGE = "message"
    TYPING = "typing"
    ERROR = "error"
    PONG = "pong"

    # Inbound only
    SET_NAME = "set-name"
    PING = "ping"


class PresenceAction(str, Enum):
    JOIN = "join"
    LEAVE = "leave"
    RENAME = "rename"


def now_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


# =============================================================================
# Outbound events
# =============================================================================


@dataclass(frozen=True, slots=True)
class WelcomeEvent:
    """Sent once to a newly accepted connection with its own identity."""

    identity: Identity
    at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": EventType.WELCOME.value,
            "id": self.identity.id,
            "name": self.identity.display_name,
            "at": self.at,
        }


@dataclass(frozen=True, slots=True)
class MessageEvent:
    """A persisted chat message, live or replayed in history."""

    sender_id: str
    sender_name: str
    text: str
    at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": EventType.MESSAGE.value,
            "id": self.sender_id,
            "name": self.sender_name,
            "text": self.text,
            "at": self.at,
        }


@dataclass(frozen=True, slots=True)
class HistoryEvent:
    """Recent messages, oldest first."""

    messages: tuple[MessageEvent, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": EventType.HISTORY.value,
            "messages": [message.to_dict() for message in self.messages],
        }


@dataclass(frozen=True, slots=True)
class SystemEvent:
    text: str
    at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {"type": EventType.SYSTEM.value, "text": self.text, "at": self.at}


@dataclass(frozen=True, slots=True)
class PresenceEvent:
    """Join, leave or rename of one identity."""

    action: PresenceAction
    identity: Identity
    at: int = field(default_factory=now_ms)

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": EventType.PRESENCE.value,
            "action": self.action.value,
            "id": self.identity.id,
            "name": self.identity.display_name,
            "at": self.at,
        }


@dataclass(frozen=True, slots=True)
class TypingEvent:
    identity: Identity
    is_typing: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": EventType.TYPING.value,
            "id": self.identity.id,
            "name": self.identity.display_name,
            "isTyping": self.is_typing,
        }


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    """Human-readable error, sent to the originating connection only."""

    text: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": EventType.ERROR.value, "text": self.text}


OutboundEvent = Union[
    WelcomeEvent,
    HistoryEvent,
    SystemEvent,
    PresenceEvent,
    MessageEvent,
    TypingEvent,
    ErrorEvent,
]


# =============================================================================
# Inbound commands
# =============================================================================


@dataclass(frozen=True, slots=True)
class SendMessage:
    text: str


@dataclass(frozen=True, slots=True)
class SetTyping:
    is_typing: bool


@dataclass(frozen=True, slots=True)
class SetName:
    name: str


@dataclass(frozen=True, slots=True)
class Ping:
    pass


InboundCommand = Union[SendMessage, SetTyping, SetName, Ping]
