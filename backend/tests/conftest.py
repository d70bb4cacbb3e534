"""
Pytest configuration and fixtures for chat gateway tests.
"""

import os

# Settings are read at import time; keep tests off the on-disk database
os.environ.setdefault("MESSAGE_STORE", "memory")
os.environ.setdefault("ENVIRONMENT", "development")

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketState

from chat_gateway.components.connection.guest_names import GuestNameGenerator
from chat_gateway.components.connection.registry import ConnectionRegistry
from chat_gateway.components.core.errors import MessageStoreError
from chat_gateway.components.data.message_store import InMemoryMessageStore, StoredMessage
from chat_gateway.components.metrics.collector import MetricsCollector
from chat_gateway.core.connection.broadcaster import BroadcastEngine
from chat_gateway.core.connection.lifecycle import SessionLifecycle
from chat_gateway.main import create_app
from shared.config.settings import Settings


TEST_SECRET = "test-session-secret-that-is-long-enough-123"


class FakeWebSocket:
    """
    Stand-in for a Starlette WebSocket used as a registry handle.

    Records every text frame sent to it (decoded from JSON) and can be
    made to fail or stall on send.
    """

    def __init__(self, name: str = "ws", fail: bool = False, delay: float = 0.0):
        self.name = name
        self.fail = fail
        self.delay = delay
        self.sent: list[dict[str, Any]] = []
        self.closed_with: tuple[int, str] | None = None
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.headers: dict[str, str] = {}
        self.query_params: dict[str, str] = {}
        self.cookies: dict[str, str] = {}

    async def send_text(self, text: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ConnectionError("peer gone")
        self.sent.append(json.loads(text))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed_with = (code, reason)
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED

    def types(self) -> list[str]:
        return [frame["type"] for frame in self.sent]

    def __repr__(self) -> str:
        return f"FakeWebSocket({self.name!r})"


class FailingStore:
    """Message store whose writes and health checks always fail."""

    def __init__(self, fail_recent: bool = False):
        self.fail_recent = fail_recent
        self.appended = 0

    async def append(self, sender_id, sender_name, text, created_at) -> StoredMessage:
        self.appended += 1
        raise MessageStoreError("append failed: OperationalError")

    async def recent(self, limit: int) -> list[StoredMessage]:
        if self.fail_recent:
            raise MessageStoreError("recent timed out after 5.0s")
        return []

    async def health(self) -> dict[str, Any]:
        return {"status": "unhealthy", "backend": "sql", "error": "health failed"}

    def close(self) -> None:
        pass


def make_settings(**overrides) -> Settings:
    """Settings isolated from the environment and any .env file."""
    values = {
        "environment": "development",
        "debug": False,
        "message_store": "memory",
        "session_secret": TEST_SECRET,
        "allowed_origins": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def utc(year=2024, month=1, day=1, hour=12, minute=0, second=0) -> datetime:
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


# =============================================================================
# Component fixtures
# =============================================================================


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def broadcaster(registry, metrics):
    return BroadcastEngine(registry=registry, metrics=metrics, send_timeout=0.2)


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def lifecycle(registry, broadcaster, store, metrics):
    return SessionLifecycle(
        registry=registry,
        broadcaster=broadcaster,
        store=store,
        metrics=metrics,
        guest_names=GuestNameGenerator(),
        history_limit=100,
        greeting_text="Connected to chat server.",
    )


# =============================================================================
# Application fixtures
# =============================================================================


@pytest.fixture
def app(settings, store):
    return create_app(settings, store=store)


@pytest.fixture
def client(app):
    """Test client with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


def read_join_sequence(ws) -> list[dict[str, Any]]:
    """Read the four frames every new connection receives."""
    return [ws.receive_json() for _ in range(4)]
