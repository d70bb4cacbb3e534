"""
Tests for message store implementations.

SqlMessageStore runs against SQLite in-memory (StaticPool) so every
session in a test sees the same database.
"""

import pytest

from chat_gateway.components.core.errors import MessageStoreError
from chat_gateway.components.data.message_store import (
    InMemoryMessageStore,
    SqlMessageStore,
    _redact_url,
    build_message_store,
)
from chat_gateway.components.data.models import Base
from shared.infrastructure.db import create_db_engine
from tests.conftest import make_settings, utc


@pytest.fixture
def sql_store():
    store = SqlMessageStore(create_db_engine("sqlite:///:memory:"), timeout=2.0)
    yield store
    store.close()


class TestSqlMessageStore:
    """SQLAlchemy-backed store."""

    @pytest.mark.asyncio
    async def test_append_returns_stored_message(self, sql_store):
        stored = await sql_store.append("u-1", "alice", "hello", utc(2024, 2, 2, 8, 0))

        assert stored.sender_id == "u-1"
        assert stored.sender_name == "alice"
        assert stored.text == "hello"
        assert stored.created_at == utc(2024, 2, 2, 8, 0)
        assert stored.at_ms == int(utc(2024, 2, 2, 8, 0).timestamp() * 1000)

    @pytest.mark.asyncio
    async def test_recent_is_oldest_first_and_limited(self, sql_store):
        for i in range(5):
            await sql_store.append("u-1", "alice", f"msg {i}", utc(second=i))

        recent = await sql_store.recent(3)

        assert [m.text for m in recent] == ["msg 2", "msg 3", "msg 4"]

    @pytest.mark.asyncio
    async def test_recent_returns_timezone_aware_datetimes(self, sql_store):
        await sql_store.append("u-1", "alice", "hello", utc())

        [message] = await sql_store.recent(1)

        assert message.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_non_positive_limit(self, sql_store):
        await sql_store.append("u-1", "alice", "hello", utc())
        assert await sql_store.recent(0) == []

    @pytest.mark.asyncio
    async def test_database_error_becomes_store_error(self, sql_store):
        Base.metadata.drop_all(bind=sql_store._engine)

        with pytest.raises(MessageStoreError):
            await sql_store.append("u-1", "alice", "hello", utc())
        with pytest.raises(MessageStoreError):
            await sql_store.recent(10)

    @pytest.mark.asyncio
    async def test_health(self, sql_store):
        health = await sql_store.health()
        assert health["status"] == "healthy"
        assert health["backend"] == "sql"
        assert "latency_ms" in health


class TestInMemoryMessageStore:
    """Process-local store."""

    @pytest.mark.asyncio
    async def test_recent_is_oldest_first_and_limited(self):
        store = InMemoryMessageStore()
        for i in range(5):
            await store.append("u-1", "alice", f"msg {i}", utc(second=i))

        assert [m.text for m in await store.recent(2)] == ["msg 3", "msg 4"]
        assert await store.recent(0) == []

    @pytest.mark.asyncio
    async def test_health(self):
        store = InMemoryMessageStore()
        await store.append("u-1", "alice", "hello", utc())

        health = await store.health()

        assert health == {"status": "healthy", "backend": "memory", "messages": 1}


class TestStoreSelection:
    def test_memory_store_selected(self):
        store = build_message_store(make_settings(message_store="memory"))
        assert isinstance(store, InMemoryMessageStore)

    def test_sql_store_selected(self):
        store = build_message_store(
            make_settings(message_store="sql", database_url="sqlite:///:memory:")
        )
        try:
            assert isinstance(store, SqlMessageStore)
        finally:
            store.close()

    def test_unknown_store_rejected(self):
        with pytest.raises(ValueError):
            build_message_store(make_settings(message_store="redis"))

    def test_redact_url_hides_credentials(self):
        assert _redact_url("postgresql://chat:s3cret@db:5432/chat") == "postgresql://***@db:5432/chat"
        assert _redact_url("sqlite:///./chat.db") == "sqlite:///./chat.db"
