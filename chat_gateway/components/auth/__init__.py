"""
Authentication components.

Identity resolution for the authenticated chat endpoint.
"""

from chat_gateway.components.auth.resolvers import (
    ConnectionCredentials,
    IdentityResolver,
    SessionTokenResolver,
)

__all__ = [
    "ConnectionCredentials",
    "IdentityResolver",
    "SessionTokenResolver",
]
