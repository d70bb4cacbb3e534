"""
Connection Registry - the single source of truth for who is online.

Maps live connection handles to identities. Every mutation and every
snapshot is serialized through one asyncio.Lock so register, deregister,
rename and snapshot observe a total order. The registry owns only the
association; it never touches the channel's I/O.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import Callable, Hashable, Iterable

from chat_gateway.components.core.constants import WSConstants
from chat_gateway.components.core.errors import (
    ConnectionNotFoundError,
    DuplicateConnectionError,
)
from shared.config.logging import get_logger

logger = get_logger(__name__)

# Any hashable object identifying one live connection (a WebSocket in production)
Handle = Hashable


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated or assigned identity of one connection."""

    id: str
    display_name: str


def sanitize_display_name(
    name: object,
    max_length: int = WSConstants.MAX_DISPLAY_NAME_LENGTH,
    fallback: str = WSConstants.FALLBACK_DISPLAY_NAME,
) -> str:
    """
    Clamp a requested display name.

    Missing values become "", anything else is converted with str(); the
    result is trimmed, truncated to max_length and replaced with the
    fallback when empty.
    """
    text = "" if name is None else str(name)
    clamped = text.strip()[:max_length]
    return clamped or fallback


class ConnectionRegistry:
    """
    Registry of live connections.

    All public methods are coroutines that acquire the same lock. Reads that
    do not need a consistent multi-entry view (`get_identity`, `count`) are
    synchronous.
    """

    def __init__(
        self,
        max_name_length: int = WSConstants.MAX_DISPLAY_NAME_LENGTH,
        fallback_name: str = WSConstants.FALLBACK_DISPLAY_NAME,
    ) -> None:
        self._lock = asyncio.Lock()
        self._entries: dict[Handle, Identity] = {}
        self._max_name_length = max_name_length
        self._fallback_name = fallback_name

    @property
    def entries(self) -> MappingProxyType[Handle, Identity]:
        """Read-only view of the current entries."""
        return MappingProxyType(self._entries)

    def count(self) -> int:
        """Number of registered connections."""
        return len(self._entries)

    def get_identity(self, handle: Handle) -> Identity | None:
        """Current identity of a handle, or None if not registered."""
        return self._entries.get(handle)

    def sanitize_name(self, name: object) -> str:
        """Clamp a name with this registry's length and fallback."""
        return sanitize_display_name(name, self._max_name_length, self._fallback_name)

    async def register(self, handle: Handle, identity: Identity) -> None:
        """
        Insert an entry.

        Raises:
            DuplicateConnectionError: If the handle is already registered.
        """
        async with self._lock:
            if handle in self._entries:
                raise DuplicateConnectionError(f"Handle already registered: {identity.id}")
            self._entries[handle] = identity

    async def register_guest(
        self,
        handle: Handle,
        make_identity: Callable[[Iterable[str]], Identity],
    ) -> Identity:
        """
        Generate and insert a guest identity in one critical section.

        `make_identity` receives the display names currently registered so
        the candidate can be checked for collisions against the same view
        the insert happens under.

        Raises:
            DuplicateConnectionError: If the handle is already registered.
        """
        async with self._lock:
            if handle in self._entries:
                raise DuplicateConnectionError("Handle already registered")
            taken = {identity.display_name for identity in self._entries.values()}
            identity = make_identity(taken)
            self._entries[handle] = identity
            return identity

    async def deregister(self, handle: Handle) -> Identity | None:
        """
        Remove an entry and return its identity.

        Unknown handles are a no-op returning None, so a connection that
        fires several close signals only produces one removal.
        """
        async with self._lock:
            identity = self._entries.pop(handle, None)
        if identity is None:
            logger.debug("Deregister of unknown handle ignored")
        return identity

    async def rename(self, handle: Handle, new_name: object) -> Identity:
        """
        Replace the display name of a registered handle.

        The id is kept. The name is clamped with sanitize_display_name().

        Raises:
            ConnectionNotFoundError: If the handle is not registered.
        """
        display_name = self.sanitize_name(new_name)
        async with self._lock:
            current = self._entries.get(handle)
            if current is None:
                raise ConnectionNotFoundError("Rename of unregistered handle")
            renamed = replace(current, display_name=display_name)
            self._entries[handle] = renamed
            return renamed

    async def snapshot(self) -> list[tuple[Handle, Identity]]:
        """Point-in-time copy of all entries."""
        async with self._lock:
            return list(self._entries.items())

    async def display_names(self) -> set[str]:
        """Display names currently in use."""
        async with self._lock:
            return {identity.display_name for identity in self._entries.values()}
