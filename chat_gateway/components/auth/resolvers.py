"""
Identity Resolvers.

An identity resolver turns a connection's credentials into an Identity or
refuses it. Resolution happens before the WebSocket is accepted, so a
refusal is reported only by the close code.

PATTERN: Strategy - the anonymous endpoint needs no resolver (guests are
synthesized by the registry); the authenticated endpoint uses
SessionTokenResolver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TYPE_CHECKING

from fastapi import HTTPException

from chat_gateway.components.connection.registry import Identity
from chat_gateway.components.core.errors import IdentityRejected
from shared.config.logging import get_logger
from shared.security.auth import verify_session_token

if TYPE_CHECKING:
    from fastapi import WebSocket
    from shared.config.settings import Settings

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectionCredentials:
    """Credentials presented by a connecting client."""

    token: str | None = None

    @classmethod
    def from_websocket(cls, websocket: "WebSocket", cookie_name: str) -> "ConnectionCredentials":
        """
        Extract the session token.

        The `token` query parameter wins over the session cookie so
        non-browser clients can authenticate without cookies.
        """
        token = websocket.query_params.get("token") or websocket.cookies.get(cookie_name)
        return cls(token=token or None)


class IdentityResolver(Protocol):
    async def resolve(self, credentials: ConnectionCredentials) -> Identity:
        """
        Resolve credentials to an identity.

        Raises:
            IdentityRejected: If the credentials are missing or invalid.
        """
        ...


class SessionTokenResolver:
    """Resolves signed session tokens to Identity(id=sub, display_name=name)."""

    def __init__(self, settings: "Settings | None" = None) -> None:
        self._settings = settings

    async def resolve(self, credentials: ConnectionCredentials) -> Identity:
        if not credentials.token:
            raise IdentityRejected("missing_token")

        try:
            claims = verify_session_token(credentials.token, settings=self._settings)
        except HTTPException as e:
            logger.debug("Session token rejected", error=str(e.detail))
            raise IdentityRejected("invalid_token") from e

        return Identity(id=claims["sub"], display_name=claims["name"].strip())
