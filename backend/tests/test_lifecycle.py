"""
Tests for the session lifecycle.

Tests verify:
- Welcome, history and greeting reach the new connection before its join
- History is capped and ordered oldest first
- Leave is broadcast exactly once per registered connection
- Rejected connections leave no trace
"""

import pytest

from chat_gateway.components.connection.guest_names import GuestNameGenerator
from chat_gateway.components.connection.registry import Identity
from chat_gateway.core.connection.lifecycle import SessionLifecycle, SessionState
from tests.conftest import FailingStore, FakeWebSocket, utc


class TestActivation:
    """Connect sequence."""

    @pytest.mark.asyncio
    async def test_join_sequence_order(self, lifecycle):
        ws = FakeWebSocket("alice")

        identity = await lifecycle.activate(ws, Identity("u-1", "alice"))

        assert identity == Identity("u-1", "alice")
        assert ws.types() == ["welcome", "history", "system", "presence"]
        welcome, history, system, join = ws.sent
        assert welcome["id"] == "u-1" and welcome["name"] == "alice"
        assert history["messages"] == []
        assert system["text"] == "Connected to chat server."
        assert join["action"] == "join" and join["id"] == "u-1"
        assert lifecycle.state_of(ws) == SessionState.ACTIVE

    @pytest.mark.asyncio
    async def test_existing_peers_see_join(self, lifecycle):
        first, second = FakeWebSocket("first"), FakeWebSocket("second")
        await lifecycle.activate(first, Identity("u-1", "one"))
        first.sent.clear()

        await lifecycle.activate(second, Identity("u-2", "two"))

        assert first.sent == [
            {
                "type": "presence",
                "action": "join",
                "id": "u-2",
                "name": "two",
                "at": first.sent[0]["at"],
            }
        ]

    @pytest.mark.asyncio
    async def test_guest_gets_generated_name(self, lifecycle):
        ws = FakeWebSocket("guest")

        identity = await lifecycle.activate_guest(ws)

        assert identity.display_name.startswith("Guest-")
        assert len(identity.display_name) == len("Guest-") + 4
        assert ws.sent[0]["name"] == identity.display_name
        assert lifecycle.guest_count == 1

    @pytest.mark.asyncio
    async def test_activation_refused_during_shutdown(self, lifecycle, registry):
        lifecycle.set_shutdown(True)

        with pytest.raises(ConnectionError):
            await lifecycle.activate(FakeWebSocket(), Identity("u-1", "alice"))
        with pytest.raises(ConnectionError):
            await lifecycle.activate_guest(FakeWebSocket())

        assert registry.count() == 0

    @pytest.mark.asyncio
    async def test_rejected_connection_is_forgotten(self, lifecycle, registry):
        ws = FakeWebSocket()
        lifecycle.begin(ws)
        lifecycle.authorizing(ws)
        assert lifecycle.state_of(ws) == SessionState.AUTHORIZING

        lifecycle.reject(ws)

        assert lifecycle.state_of(ws) is None
        assert registry.count() == 0
        assert ws.sent == []


class TestHistoryReplay:
    """History delivered on join."""

    @pytest.mark.asyncio
    async def test_history_capped_at_limit(self, lifecycle, store):
        for i in range(150):
            await store.append("u-1", "alice", f"msg {i}", utc(second=0))

        ws = FakeWebSocket()
        await lifecycle.activate(ws, Identity("u-2", "bob"))

        messages = ws.sent[1]["messages"]
        assert len(messages) == 100
        assert messages[0]["text"] == "msg 50"
        assert messages[-1]["text"] == "msg 149"

    @pytest.mark.asyncio
    async def test_history_limit_never_exceeds_hundred(self, registry, broadcaster, store, metrics):
        for i in range(120):
            await store.append("u-1", "alice", f"msg {i}", utc())
        lifecycle = SessionLifecycle(
            registry=registry,
            broadcaster=broadcaster,
            store=store,
            metrics=metrics,
            guest_names=GuestNameGenerator(),
            history_limit=500,
        )

        ws = FakeWebSocket()
        await lifecycle.activate(ws, Identity("u-2", "bob"))

        assert len(ws.sent[1]["messages"]) == 100

    @pytest.mark.asyncio
    async def test_history_carries_stored_timestamp(self, lifecycle, store):
        created = utc(2024, 3, 1, 10, 30)
        await store.append("u-1", "alice", "hello", created)

        ws = FakeWebSocket()
        await lifecycle.activate(ws, Identity("u-2", "bob"))

        [message] = ws.sent[1]["messages"]
        assert message == {
            "type": "message",
            "id": "u-1",
            "name": "alice",
            "text": "hello",
            "at": int(created.timestamp() * 1000),
        }

    @pytest.mark.asyncio
    async def test_store_failure_sends_empty_history(self, registry, broadcaster, metrics):
        lifecycle = SessionLifecycle(
            registry=registry,
            broadcaster=broadcaster,
            store=FailingStore(fail_recent=True),
            metrics=metrics,
            guest_names=GuestNameGenerator(),
        )

        ws = FakeWebSocket()
        await lifecycle.activate(ws, Identity("u-1", "alice"))

        assert ws.types() == ["welcome", "history", "system", "presence"]
        assert ws.sent[1]["messages"] == []


class TestDeactivation:
    """Disconnect sequence."""

    @pytest.mark.asyncio
    async def test_leave_broadcast_once(self, lifecycle):
        leaving, staying = FakeWebSocket("leaving"), FakeWebSocket("staying")
        await lifecycle.activate(leaving, Identity("u-1", "alice"))
        await lifecycle.activate(staying, Identity("u-2", "bob"))
        staying.sent.clear()

        first = await lifecycle.deactivate(leaving)
        second = await lifecycle.deactivate(leaving)

        assert first == Identity("u-1", "alice")
        assert second is None
        assert [(f["type"], f["action"], f["id"]) for f in staying.sent] == [
            ("presence", "leave", "u-1"),
        ]

    @pytest.mark.asyncio
    async def test_unregistered_handle_broadcasts_nothing(self, lifecycle):
        watcher = FakeWebSocket("watcher")
        await lifecycle.activate(watcher, Identity("u-1", "alice"))
        watcher.sent.clear()

        assert await lifecycle.deactivate(FakeWebSocket("never-joined")) is None
        assert watcher.sent == []

    @pytest.mark.asyncio
    async def test_leave_carries_renamed_identity(self, lifecycle, registry):
        guest, watcher = FakeWebSocket("guest"), FakeWebSocket("watcher")
        identity = await lifecycle.activate_guest(guest)
        await lifecycle.activate(watcher, Identity("u-2", "bob"))
        await registry.rename(guest, "Ana")
        watcher.sent.clear()

        await lifecycle.deactivate(guest)

        assert watcher.sent[0]["id"] == identity.id
        assert watcher.sent[0]["name"] == "Ana"
        assert lifecycle.guest_count == 0
