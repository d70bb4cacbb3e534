"""
Chat gateway main application.

Serves one chat room over two WebSocket endpoints: anonymous guests and
authenticated members. Both share the same registry, history and broadcasts.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from shared.config.logging import get_logger, setup_logging
from shared.config.settings import Settings, get_settings
from shared.infrastructure.correlation import CorrelationIdMiddleware
from chat_gateway.connection_manager import ConnectionManager
from chat_gateway.components.core.constants import DEFAULT_ALLOWED_ORIGINS
from chat_gateway.components.data.message_store import MessageStore, build_message_store
from chat_gateway.components.endpoints.handlers import GuestEndpoint, MemberEndpoint
from chat_gateway.components.metrics.prometheus import generate_prometheus_metrics

logger = get_logger(__name__)


def _cors_origins(settings: Settings) -> list[str]:
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    # Add HTTPS variants of the development defaults
    return list(DEFAULT_ALLOWED_ORIGINS) + [
        origin.replace("http://", "https://") for origin in DEFAULT_ALLOWED_ORIGINS
    ]


def create_app(settings: Settings | None = None, store: MessageStore | None = None) -> FastAPI:
    """
    Build the gateway application.

    Args:
        settings: Settings to use (defaults to the cached environment settings).
        store: Message store to use (defaults to the one selected by settings).
    """
    settings = settings or get_settings()
    store = store if store is not None else build_message_store(settings)
    manager = ConnectionManager(settings, store)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        logger.info(
            "Starting chat gateway",
            port=settings.ws_gateway_port,
            env=settings.environment,
            store=settings.message_store,
        )
        for problem in settings.validate_production_secrets():
            logger.warning("Configuration problem", problem=problem)

        yield

        logger.info("Shutting down chat gateway")
        await manager.shutdown()
        try:
            store.close()
        except Exception as e:
            logger.warning("Error closing message store", error=str(e))

    app = FastAPI(
        title=settings.app_name,
        description="Real-time presence and chat relay",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.manager = manager
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings),
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    # =========================================================================
    # Health Check
    # =========================================================================

    @app.get("/ws/health")
    def health_check():
        """Basic health check endpoint."""
        try:
            stats = manager.get_stats_sync()
        except Exception as e:
            logger.warning("Failed to get stats in health check", error=str(e))
            stats = {"error": "stats_unavailable"}
        return {
            "status": "healthy",
            "service": "chat-gateway",
            "version": app.version,
            "environment": settings.environment,
            **stats,
        }

    @app.get("/ws/health/detailed")
    async def detailed_health_check():
        """Detailed health check with message store status."""
        stats = await manager.get_stats()
        store_health = await manager.store_health()
        healthy = store_health.get("status") == "healthy"
        checks = {
            "service": "chat-gateway",
            "environment": settings.environment,
            "connections": stats,
            "dependencies": {"message_store": store_health},
            "status": "healthy" if healthy else "degraded",
        }
        if not healthy:
            return JSONResponse(content=checks, status_code=503)
        return checks

    # =========================================================================
    # Prometheus Metrics Endpoint
    # =========================================================================

    @app.get("/ws/metrics")
    async def prometheus_metrics():
        """
        Prometheus-compatible metrics endpoint.

        Configure Prometheus scrape:
            scrape_configs:
              - job_name: 'chat-gateway'
                static_configs:
                  - targets: ['localhost:8080']
                metrics_path: '/ws/metrics'
        """
        metrics_output = await generate_prometheus_metrics(manager)
        return PlainTextResponse(
            content=metrics_output,
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    # =========================================================================
    # WebSocket Endpoints
    # =========================================================================

    @app.websocket("/ws/guest")
    async def guest_websocket(websocket: WebSocket):
        """Anonymous chat: generated guest name, renaming allowed."""
        endpoint = GuestEndpoint(websocket, manager)
        await endpoint.run()

    @app.websocket("/ws/chat")
    async def member_websocket(websocket: WebSocket):
        """Authenticated chat: session token from `token` query or cookie."""
        endpoint = MemberEndpoint(websocket, manager)
        await endpoint.run()

    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "chat_gateway.main:app",
        host=_settings.ws_gateway_host,
        port=_settings.ws_gateway_port,
        reload=_settings.debug,
    )
