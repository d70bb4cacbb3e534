"""
Tests for the ConnectionManager facade: statistics and graceful shutdown.
"""

import pytest

from chat_gateway.components.connection.registry import Identity
from chat_gateway.components.core.constants import WSCloseCode
from chat_gateway.connection_manager import ConnectionManager
from tests.conftest import FailingStore, FakeWebSocket


@pytest.fixture
def manager(settings, store):
    return ConnectionManager(settings, store)


class TestStats:
    @pytest.mark.asyncio
    async def test_stats_track_connections(self, manager):
        await manager.activate(FakeWebSocket("m"), Identity("u-1", "alice"))
        await manager.activate_guest(FakeWebSocket("g"))

        stats = await manager.get_stats()

        assert stats["total_connections"] == 2
        assert stats["guest_connections"] == 1
        assert stats["users_online"] == 2
        assert stats["history_limit"] == 100
        assert stats["metrics"]["connections_accepted"] == 2

    def test_rejection_hooks_counted(self, manager):
        manager.record_auth_rejection()
        manager.record_origin_rejection()
        manager.record_oversized_close()

        metrics = manager.get_stats_sync()["metrics"]

        assert metrics["connections_rejected_auth"] == 1
        assert metrics["connections_rejected_origin"] == 1
        assert metrics["connections_closed_oversized"] == 1

    @pytest.mark.asyncio
    async def test_store_health_passthrough(self, settings):
        manager = ConnectionManager(settings, FailingStore())
        assert (await manager.store_health())["status"] == "unhealthy"


class TestShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_closes_and_deregisters(self, manager):
        a, b = FakeWebSocket("a"), FakeWebSocket("b")
        await manager.activate(a, Identity("u-1", "alice"))
        await manager.activate_guest(b)

        closed = await manager.shutdown()

        assert closed == 2
        assert a.closed_with == (WSCloseCode.GOING_AWAY, "Server shutdown")
        assert b.closed_with == (WSCloseCode.GOING_AWAY, "Server shutdown")
        assert manager.total_connections == 0
        assert manager.is_shutting_down()

    @pytest.mark.asyncio
    async def test_no_new_connections_after_shutdown(self, manager):
        await manager.shutdown()

        with pytest.raises(ConnectionError):
            await manager.activate_guest(FakeWebSocket())
