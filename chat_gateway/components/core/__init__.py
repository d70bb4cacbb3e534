"""
Core components.

Constants, connection context and the gateway's exception types.
"""

from chat_gateway.components.core.constants import (
    WSCloseCode,
    WSConstants,
    MSG_PING_PLAIN,
    MSG_PING_JSON,
    MSG_PONG_JSON,
    DEFAULT_ALLOWED_ORIGINS,
    validate_websocket_origin,
)
from chat_gateway.components.core.context import WebSocketContext, sanitize_log_data
from chat_gateway.components.core.errors import (
    ChatGatewayError,
    DuplicateConnectionError,
    ConnectionNotFoundError,
    ProtocolError,
    IdentityRejected,
    MessageStoreError,
    PersistResult,
)

__all__ = [
    # Constants
    "WSCloseCode",
    "WSConstants",
    "MSG_PING_PLAIN",
    "MSG_PING_JSON",
    "MSG_PONG_JSON",
    "DEFAULT_ALLOWED_ORIGINS",
    "validate_websocket_origin",
    # Context
    "WebSocketContext",
    "sanitize_log_data",
    # Errors
    "ChatGatewayError",
    "DuplicateConnectionError",
    "ConnectionNotFoundError",
    "ProtocolError",
    "IdentityRejected",
    "MessageStoreError",
    "PersistResult",
]
