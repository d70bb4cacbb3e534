"""
Heartbeat handling.

Clients may send "ping" or {"type":"ping"} at any time; the gateway answers
with {"type":"pong"} on the same connection. Liveness detection itself is
left to the transport, so no server-side idle timeout is tracked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat_gateway.components.core.constants import (
    MSG_PING_JSON,
    MSG_PING_PLAIN,
    MSG_PONG_JSON,
)
from shared.config.logging import get_logger

if TYPE_CHECKING:
    from fastapi import WebSocket

logger = get_logger(__name__)


def is_heartbeat(data: str) -> bool:
    """True if the frame is a heartbeat ping."""
    return data.strip() in (MSG_PING_PLAIN, MSG_PING_JSON)


async def handle_heartbeat(ws: "WebSocket", data: str) -> bool:
    """
    Respond to ping messages with pong.

    Args:
        ws: The WebSocket connection.
        data: The received message data.

    Returns:
        True if message was a heartbeat and was handled, False otherwise.
    """
    if not is_heartbeat(data):
        return False
    try:
        await ws.send_text(MSG_PONG_JSON)
    except (ConnectionError, RuntimeError, OSError):
        # Connection may have closed - the receive loop handles cleanup
        pass
    except Exception as e:
        logger.warning(
            "Unexpected error sending heartbeat response",
            error=type(e).__name__,
            message=str(e),
        )
    return True
