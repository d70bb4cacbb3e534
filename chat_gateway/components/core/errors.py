"""
Chat gateway exception taxonomy.

Protocol and persistence errors are reported back to the originating
connection as an `error` event; they never close the connection. Registry
errors signal a broken invariant and are logged by the caller. Identity
rejection closes the connection before it is accepted.
"""

from __future__ import annotations

from dataclasses import dataclass


class ChatGatewayError(Exception):
    """Base class for all chat gateway errors."""


class DuplicateConnectionError(ChatGatewayError):
    """A handle was registered twice."""


class ConnectionNotFoundError(ChatGatewayError):
    """The handle is not present in the registry."""


class ProtocolError(ChatGatewayError):
    """
    An inbound frame could not be understood.

    The message is human-readable and is sent verbatim to the client.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class IdentityRejected(ChatGatewayError):
    """The identity resolver refused the connection's credentials."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class MessageStoreError(ChatGatewayError):
    """The message store could not complete an append or a read."""


@dataclass(frozen=True, slots=True)
class PersistResult:
    """
    Outcome of persisting one chat message.

    Broadcast of the message is conditioned on `ok`; on failure `reason`
    describes what went wrong for logging.
    """

    ok: bool
    reason: str | None = None

    @classmethod
    def success(cls) -> "PersistResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "PersistResult":
        return cls(ok=False, reason=reason)
