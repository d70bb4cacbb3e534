"""
Inbound frame handling.
"""

from chat_gateway.core.inbound.dispatcher import InboundDispatcher
from chat_gateway.core.inbound.ingestion import MessageIngestion
from chat_gateway.core.inbound.relay import PresenceRelay

__all__ = [
    "InboundDispatcher",
    "MessageIngestion",
    "PresenceRelay",
]
