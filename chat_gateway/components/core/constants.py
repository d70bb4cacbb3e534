"""
Chat Gateway Constants.

Centralized constants with documentation explaining each value.
"""

from enum import IntEnum
from typing import Final

from shared.config.logging import get_logger

__all__ = [
    "WSCloseCode",
    "WSConstants",
    "MSG_PING_PLAIN",
    "MSG_PING_JSON",
    "MSG_PONG_JSON",
    "DEFAULT_ALLOWED_ORIGINS",
    "validate_websocket_origin",
]

logger = get_logger(__name__)


class WSCloseCode(IntEnum):
    """
    WebSocket close codes used by the gateway.

    Standard codes (1000-1999) from RFC 6455.
    Custom codes (4000-4999) for application-specific errors.
    """

    # Standard codes (RFC 6455)
    NORMAL = 1000  # Normal closure
    GOING_AWAY = 1001  # Server shutting down or client navigating away
    POLICY_VIOLATION = 1008  # Generic policy violation
    MESSAGE_TOO_BIG = 1009  # Message too large to process
    SERVER_ERROR = 1011  # Unexpected server error

    # Custom application codes (4000-4999)
    AUTH_FAILED = 4001  # Session token missing, invalid or expired
    FORBIDDEN = 4003  # Origin not allowed


class WSConstants:
    """
    Chat gateway operational constants.

    These are defaults used when a value is not supplied by settings.
    At runtime the ConnectionManager reads the equivalent settings fields,
    which take precedence.
    """

    # WS_ACCEPT_TIMEOUT: 5 seconds
    # WebSocket handshake should complete within TCP timeout.
    WS_ACCEPT_TIMEOUT: Final[float] = 5.0

    # WS_SEND_TIMEOUT: 5 seconds
    # Upper bound on one send to one peer during fan-out. A peer that cannot
    # drain its socket within this window is skipped for that event.
    WS_SEND_TIMEOUT: Final[float] = 5.0

    # STORE_TIMEOUT: 5 seconds
    # Message store calls run in a worker thread; past this the call is
    # reported as a persistence failure to the sender.
    STORE_TIMEOUT: Final[float] = 5.0

    # HISTORY_LIMIT: 100
    # Hard upper bound on messages replayed to a newly joined session.
    HISTORY_LIMIT: Final[int] = 100

    # MAX_DISPLAY_NAME_LENGTH: 24
    MAX_DISPLAY_NAME_LENGTH: Final[int] = 24

    # FALLBACK_DISPLAY_NAME: used when a requested name trims to nothing
    FALLBACK_DISPLAY_NAME: Final[str] = "Guest"

    # MAX_MESSAGE_SIZE: 16 KB per inbound frame
    MAX_MESSAGE_SIZE: Final[int] = 16 * 1024

    # MAX_LOG_DATA_LENGTH: truncation applied to user text before logging
    MAX_LOG_DATA_LENGTH: Final[int] = 100


# Message type constants for heartbeat protocol
MSG_PING_PLAIN: Final[str] = "ping"
MSG_PING_JSON: Final[str] = '{"type":"ping"}'
MSG_PONG_JSON: Final[str] = '{"type":"pong"}'


# Default development origins
DEFAULT_ALLOWED_ORIGINS: Final[tuple[str, ...]] = (
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:8080",
    "http://127.0.0.1:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:8080",
)


def validate_websocket_origin(origin: str | None, settings: object) -> bool:
    """
    Validate WebSocket origin header against allowed origins.

    A missing Origin header is accepted in development only; browsers always
    send one, so its absence outside development means a non-browser client.

    Args:
        origin: The Origin header value, or None if not present.
        settings: Settings object with environment and allowed_origins attributes.

    Returns:
        True if origin is allowed, False otherwise.
    """
    allowed_origins_str = getattr(settings, "allowed_origins", None)
    if allowed_origins_str:
        allowed = [o.strip() for o in allowed_origins_str.split(",") if o.strip()]
    else:
        allowed = list(DEFAULT_ALLOWED_ORIGINS)

    if not origin:
        is_dev = getattr(settings, "environment", "production") == "development"
        if is_dev:
            logger.debug("WebSocket connection with missing Origin header (allowed in dev mode only)")
            return True
        logger.warning("WebSocket connection rejected: missing Origin header in production")
        return False

    if origin in allowed:
        return True

    logger.warning(
        "WebSocket connection rejected: origin not in allowed list",
        origin=origin,
        allowed_count=len(allowed),
    )
    return False
