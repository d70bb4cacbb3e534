"""
Message Store - durable append-only chat log.

The gateway talks to the store through the MessageStore protocol:
append() one message, recent() the last N in chronological order, and
health() for the detailed health endpoint.

SqlMessageStore runs its blocking SQLAlchemy calls in a worker thread
bounded by a timeout so a slow database cannot stall the event loop.
InMemoryMessageStore keeps the log in-process.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, TYPE_CHECKING

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from chat_gateway.components.core.constants import WSConstants
from chat_gateway.components.core.errors import MessageStoreError
from chat_gateway.components.data.models import Base, ChatMessage
from shared.config.logging import get_logger
from shared.infrastructure.db import (
    build_session_factory,
    create_db_engine,
    safe_commit,
    session_scope,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine
    from shared.config.settings import Settings

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class StoredMessage:
    sender_id: str
    sender_name: str
    text: str
    created_at: datetime

    @property
    def at_ms(self) -> int:
        """created_at as milliseconds since the Unix epoch."""
        return int(self.created_at.timestamp() * 1000)


class MessageStore(Protocol):
    """Interface the gateway requires from a message store."""

    async def append(
        self,
        sender_id: str,
        sender_name: str,
        text: str,
        created_at: datetime,
    ) -> StoredMessage:
        """Persist one message. Raises MessageStoreError on failure."""
        ...

    async def recent(self, limit: int) -> list[StoredMessage]:
        """The last `limit` messages, oldest first."""
        ...

    async def health(self) -> dict[str, Any]:
        ...

    def close(self) -> None:
        ...


def _as_utc(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back out
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlMessageStore:
    """SQLAlchemy-backed message store."""

    def __init__(
        self,
        engine: "Engine",
        timeout: float = WSConstants.STORE_TIMEOUT,
        create_schema: bool = True,
    ) -> None:
        self._engine = engine
        self._session_factory = build_session_factory(engine)
        self._timeout = timeout
        if create_schema:
            Base.metadata.create_all(bind=engine)

    @classmethod
    def from_url(cls, database_url: str, timeout: float = WSConstants.STORE_TIMEOUT) -> "SqlMessageStore":
        return cls(create_db_engine(database_url), timeout=timeout)

    async def _run(self, operation: str, func: Any, *args: Any) -> Any:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.error("Message store timeout", operation=operation, timeout=self._timeout)
            raise MessageStoreError(f"{operation} timed out after {self._timeout}s")
        except SQLAlchemyError as e:
            logger.error("Message store database error", operation=operation, error=str(e))
            raise MessageStoreError(f"{operation} failed: {type(e).__name__}") from e

    async def append(
        self,
        sender_id: str,
        sender_name: str,
        text: str,
        created_at: datetime,
    ) -> StoredMessage:
        return await self._run("append", self._append_sync, sender_id, sender_name, text, created_at)

    async def recent(self, limit: int) -> list[StoredMessage]:
        if limit <= 0:
            return []
        return await self._run("recent", self._recent_sync, limit)

    async def health(self) -> dict[str, Any]:
        started = time.perf_counter()
        try:
            await self._run("health", self._ping_sync)
        except MessageStoreError as e:
            return {"status": "unhealthy", "backend": "sql", "error": str(e)}
        return {
            "status": "healthy",
            "backend": "sql",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }

    def close(self) -> None:
        self._engine.dispose()

    def _append_sync(
        self,
        sender_id: str,
        sender_name: str,
        text: str,
        created_at: datetime,
    ) -> StoredMessage:
        with session_scope(self._session_factory) as db:
            row = ChatMessage(
                sender_id=sender_id,
                sender_name=sender_name,
                text=text,
                created_at=created_at,
            )
            db.add(row)
            safe_commit(db)
            return StoredMessage(
                sender_id=row.sender_id,
                sender_name=row.sender_name,
                text=row.text,
                created_at=_as_utc(row.created_at),
            )

    def _recent_sync(self, limit: int) -> list[StoredMessage]:
        with session_scope(self._session_factory) as db:
            rows = db.execute(
                select(ChatMessage).order_by(ChatMessage.id.desc()).limit(limit)
            ).scalars().all()
            return [
                StoredMessage(
                    sender_id=row.sender_id,
                    sender_name=row.sender_name,
                    text=row.text,
                    created_at=_as_utc(row.created_at),
                )
                for row in reversed(rows)
            ]

    def _ping_sync(self) -> None:
        with session_scope(self._session_factory) as db:
            db.execute(text("SELECT 1"))


class InMemoryMessageStore:
    """Append-only in-process log. History is lost on restart."""

    def __init__(self) -> None:
        self._messages: list[StoredMessage] = []
        self._lock = asyncio.Lock()

    async def append(
        self,
        sender_id: str,
        sender_name: str,
        text: str,
        created_at: datetime,
    ) -> StoredMessage:
        message = StoredMessage(sender_id, sender_name, text, created_at)
        async with self._lock:
            self._messages.append(message)
        return message

    async def recent(self, limit: int) -> list[StoredMessage]:
        if limit <= 0:
            return []
        async with self._lock:
            return list(self._messages[-limit:])

    async def health(self) -> dict[str, Any]:
        return {"status": "healthy", "backend": "memory", "messages": len(self._messages)}

    def close(self) -> None:
        pass


def build_message_store(settings: "Settings") -> MessageStore:
    """Message store selected by settings.message_store."""
    if settings.message_store == "memory":
        logger.info("Using in-memory message store")
        return InMemoryMessageStore()
    if settings.message_store != "sql":
        raise ValueError(f"Unknown message store: {settings.message_store!r}")
    logger.info("Using SQL message store", database_url=_redact_url(settings.database_url))
    return SqlMessageStore.from_url(settings.database_url, timeout=settings.store_timeout)


def _redact_url(url: str) -> str:
    """Hide credentials in a database URL for logging."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    return f"{scheme}://***@{rest.split('@', 1)[1]}"
