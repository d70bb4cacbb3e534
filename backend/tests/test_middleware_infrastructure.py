"""
Tests for middleware and infrastructure components.
"""

import json
import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from chat_gateway.components.connection.heartbeat import handle_heartbeat, is_heartbeat
from chat_gateway.components.core.constants import validate_websocket_origin
from chat_gateway.components.core.context import WebSocketContext, sanitize_log_data
from chat_gateway.components.connection.registry import Identity
from shared.config.logging import StructuredFormatter, get_logger
from shared.infrastructure.correlation import (
    CorrelationIdFilter,
    CorrelationIdMiddleware,
    correlation_id_var,
    get_correlation_id,
    new_correlation_id,
)
from tests.conftest import FakeWebSocket, make_settings


# =============================================================================
# CorrelationIdMiddleware Tests
# =============================================================================

class TestCorrelationIdMiddleware:
    """Tests for correlation ID middleware."""

    @pytest.fixture
    def app_with_correlation(self):
        app = FastAPI()
        app.add_middleware(CorrelationIdMiddleware)

        @app.get("/test")
        def test_endpoint():
            return {"correlation_id": get_correlation_id()}

        return app

    def test_generates_id_when_missing(self, app_with_correlation):
        response = TestClient(app_with_correlation).get("/test")

        request_id = response.headers["X-Request-ID"]
        assert len(request_id) == 32
        assert response.json()["correlation_id"] == request_id

    def test_uses_incoming_header(self, app_with_correlation):
        response = TestClient(app_with_correlation).get("/test", headers={"X-Request-ID": "abc"})

        assert response.headers["X-Request-ID"] == "abc"
        assert response.json()["correlation_id"] == "abc"

    def test_context_reset_after_request(self, app_with_correlation):
        TestClient(app_with_correlation).get("/test", headers={"X-Request-ID": "abc"})
        assert get_correlation_id() != "abc"


class TestCorrelationIdFilter:
    def test_filter_injects_current_id(self):
        token = correlation_id_var.set("conn-42")
        try:
            record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", (), None)
            assert CorrelationIdFilter().filter(record) is True
            assert record.correlation_id == "conn-42"
        finally:
            correlation_id_var.reset(token)

    def test_new_correlation_id_binds(self):
        connection_id = new_correlation_id()
        assert get_correlation_id() == connection_id


# =============================================================================
# Structured logging Tests
# =============================================================================

class TestStructuredLogging:
    def test_keyword_fields_become_extra_data(self, caplog):
        logger = get_logger("chat_gateway.tests")
        with caplog.at_level(logging.INFO, logger="chat_gateway.tests"):
            logger.info("Message persisted", sender_id="u-1", length=12)

        [record] = caplog.records
        assert record.extra_data == {"sender_id": "u-1", "length": 12}

    def test_json_formatter(self):
        record = logging.LogRecord("chat", logging.WARNING, __file__, 1, "Store slow", (), None)
        record.extra_data = {"latency_ms": 950}
        record.correlation_id = "abcd1234"

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["level"] == "WARNING"
        assert payload["message"] == "Store slow"
        assert payload["data"] == {"latency_ms": 950}
        assert payload["correlation_id"] == "abcd1234"

    def test_sanitize_log_data(self):
        assert sanitize_log_data("a\x00b\u202ec") == "abc"
        assert sanitize_log_data('say "hi"') == 'say \\"hi\\"'
        assert sanitize_log_data("x" * 10, max_length=4) == "xxxx..."


class TestWebSocketContext:
    def test_audit_dict_after_identity_bound(self):
        ws = FakeWebSocket()
        ws.headers = {"origin": "http://localhost:5173"}
        context = WebSocketContext.from_websocket(ws, "/ws/guest", connection_id="0123456789ab")

        assert context.identifier == "conn:01234567"

        context.bind_identity(Identity("g-1", "Guest-AB12"), is_guest=True)
        audit = context.to_audit_dict("CONNECT", reason="ok")

        assert audit == {
            "event_type": "CONNECT",
            "endpoint": "/ws/guest",
            "origin": "http://localhost:5173",
            "user_id": "g-1",
            "display_name": "Guest-AB12",
            "connection_id": "0123456789ab",
            "is_guest": True,
            "reason": "ok",
        }
        assert context.identifier == "user:g-1"


# =============================================================================
# Origin and heartbeat Tests
# =============================================================================

class TestOriginValidation:
    def test_default_origins_in_development(self):
        settings = make_settings()
        assert validate_websocket_origin("http://localhost:5173", settings)
        assert not validate_websocket_origin("http://evil.example", settings)

    def test_missing_origin_only_allowed_in_development(self):
        assert validate_websocket_origin(None, make_settings(environment="development"))
        assert not validate_websocket_origin(None, make_settings(environment="production"))

    def test_configured_origins(self):
        settings = make_settings(allowed_origins="https://chat.example, https://www.chat.example")
        assert validate_websocket_origin("https://www.chat.example", settings)
        assert not validate_websocket_origin("http://localhost:5173", settings)


class TestHeartbeat:
    @pytest.mark.parametrize("frame", ["ping", " ping\n", '{"type":"ping"}'])
    def test_is_heartbeat(self, frame):
        assert is_heartbeat(frame)

    def test_message_is_not_heartbeat(self):
        assert not is_heartbeat('{"type":"message","text":"ping"}')

    @pytest.mark.asyncio
    async def test_pong_sent(self):
        ws = FakeWebSocket()
        assert await handle_heartbeat(ws, "ping") is True
        assert ws.sent == [{"type": "pong"}]

    @pytest.mark.asyncio
    async def test_closed_peer_does_not_raise(self):
        ws = FakeWebSocket(fail=True)
        assert await handle_heartbeat(ws, "ping") is True


# =============================================================================
# Settings Tests
# =============================================================================

class TestSettingsValidation:
    def test_development_defaults_pass(self):
        assert make_settings().validate_production_secrets() == []

    def test_production_requires_real_configuration(self):
        errors = make_settings(
            environment="production",
            debug=True,
            session_secret="secret",
            allowed_origins="",
        ).validate_production_secrets()

        assert any("SESSION_SECRET" in e for e in errors)
        assert any("DEBUG" in e for e in errors)
        assert any("ALLOWED_ORIGINS" in e for e in errors)

    def test_history_limit_bounded(self):
        with pytest.raises(ValueError):
            make_settings(history_limit=101)
