"""
Data access components.

Chat message persistence.
"""

from chat_gateway.components.data.models import Base, ChatMessage
from chat_gateway.components.data.message_store import (
    MessageStore,
    StoredMessage,
    SqlMessageStore,
    InMemoryMessageStore,
    build_message_store,
)

__all__ = [
    "Base",
    "ChatMessage",
    "MessageStore",
    "StoredMessage",
    "SqlMessageStore",
    "InMemoryMessageStore",
    "build_message_store",
]
