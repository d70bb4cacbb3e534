"""
WebSocket Context for audit logging.

Encapsulates connection metadata for consistent audit logging.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from fastapi import WebSocket
    from chat_gateway.components.connection.registry import Identity


# Control characters and Unicode direction overrides
_CONTROL_CHAR_PATTERN = re.compile(
    r'[\x00-\x1f\x7f-\x9f'  # ASCII control characters
    r'\u200b-\u200f'  # Zero-width and direction marks
    r'\u202a-\u202e'  # Bidirectional text formatting (RTL override, etc.)
    r'\u2066-\u2069'  # Isolate formatting characters
    r'\ufeff]'  # BOM / Zero-width no-break space
)


def sanitize_log_data(data: str, max_length: int = 100) -> str:
    """
    Sanitize user-provided data before logging.

    Strips control and direction-override characters and escapes quotes and
    backslashes. Truncation happens before escaping so the output length is
    stable.

    Args:
        data: Raw user data.
        max_length: Maximum length to include in logs.

    Returns:
        Sanitized, truncated string safe for structured logging.
    """
    truncated = data[:max_length] if len(data) > max_length else data
    was_truncated = len(data) > max_length

    sanitized = _CONTROL_CHAR_PATTERN.sub('', truncated)

    # Backslashes first to avoid double-escaping
    sanitized = sanitized.replace('\\', '\\\\')
    sanitized = sanitized.replace('"', '\\"')

    if was_truncated:
        return sanitized + "..."
    return sanitized


@dataclass
class WebSocketContext:
    """
    Context object for WebSocket connection metadata.

    Usage:
        ctx = WebSocketContext.from_websocket(websocket, "/ws/guest")
        ctx.bind_identity(identity)
        ctx.audit("CONNECT")
        # ... later
        ctx.audit("DISCONNECT", reason="client_disconnect")
    """

    endpoint: str
    origin: str | None = None
    connection_id: str | None = None
    user_id: str | None = None
    display_name: str | None = None
    is_guest: bool = False

    @classmethod
    def from_websocket(
        cls,
        websocket: "WebSocket",
        endpoint: str,
        connection_id: str | None = None,
    ) -> "WebSocketContext":
        """Create context with basic connection info (origin)."""
        return cls(
            endpoint=endpoint,
            origin=websocket.headers.get("origin"),
            connection_id=connection_id,
        )

    def bind_identity(self, identity: "Identity", is_guest: bool = False) -> None:
        """Attach the resolved identity once authorization succeeded."""
        self.user_id = identity.id
        self.display_name = identity.display_name
        self.is_guest = is_guest

    def to_audit_dict(self, event_type: str, **extra: Any) -> dict[str, Any]:
        """
        Convert to dictionary for audit logging.

        Only includes non-None fields to reduce log noise.
        """
        result: dict[str, Any] = {
            "event_type": event_type,
            "endpoint": self.endpoint,
        }

        if self.origin:
            result["origin"] = self.origin
        if self.user_id:
            result["user_id"] = self.user_id
        if self.display_name:
            result["display_name"] = sanitize_log_data(self.display_name)
        if self.connection_id:
            result["connection_id"] = self.connection_id
        if self.is_guest:
            result["is_guest"] = True

        result.update(extra)

        return result

    def audit(
        self,
        event_type: str,
        logger_func: Any = None,
        **extra: Any,
    ) -> None:
        """
        Log an audit event.

        Args:
            event_type: The audit event type.
            logger_func: Optional custom logger function (default: audit_ws_connection).
            **extra: Additional fields to log.
        """
        if logger_func is None:
            from shared.config.logging import audit_ws_connection
            logger_func = audit_ws_connection

        audit_dict = self.to_audit_dict(event_type, **extra)
        logger_func(**audit_dict)

    @property
    def identifier(self) -> str:
        """Human-readable identifier for this connection."""
        if self.user_id:
            return f"user:{self.user_id}"
        if self.connection_id:
            return f"conn:{self.connection_id[:8]}"
        return "anonymous"
