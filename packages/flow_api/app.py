"""FastAPI Application Factory for the USSD flow engine.

This module provides the FastAPI application factory and configuration
for the session and flow REST API.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Iterable, Optional

import structlog
from fastapi import FastAPI, Response  # type: ignore[import-not-found]
from fastapi.middleware.cors import CORSMiddleware  # type: ignore[import-not-found]
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest  # type: ignore[import-not-found]

from flow_config import EngineSettings, FlowGraph
from flow_core import (
    CompositeEventSink,
    ExpirySweeper,
    ExternalActionExecutor,
    HttpActionExecutor,
    InMemoryEventSink,
    LoggingEventSink,
    SessionEngine,
    SimulatedActionExecutor,
)

logger = structlog.get_logger(__name__)

API_VERSION = "0.1.0"


class AppState:
    """Application state container."""

    def __init__(self) -> None:
        """Initialize application state."""
        self.engine: Optional[SessionEngine] = None
        self.sweeper: Optional[ExpirySweeper] = None
        self.settings: Optional[EngineSettings] = None
        self.events: Optional[InMemoryEventSink] = None
        self.executor: Optional[ExternalActionExecutor] = None


app_state = AppState()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan.

    Args:
        app: FastAPI application instance

    Yields:
        None during application lifetime
    """
    # Startup: expire idle sessions in the background
    if app_state.sweeper is not None:
        await app_state.sweeper.start()

    yield

    # Shutdown: stop the sweeper and release the outbound client
    if app_state.sweeper is not None:
        await app_state.sweeper.stop()
    if isinstance(app_state.executor, HttpActionExecutor):
        await app_state.executor.aclose()


def _create_executor(settings: EngineSettings) -> ExternalActionExecutor:
    if settings.action_webhook_url:
        return HttpActionExecutor(
            settings.action_webhook_url, timeout=settings.action_timeout_seconds
        )
    return SimulatedActionExecutor()


def create_app(
    settings: Optional[EngineSettings] = None,
    engine: Optional[SessionEngine] = None,
    flows: Optional[Iterable[FlowGraph]] = None,
    cors_origins: Optional[list[str]] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional engine settings (defaults if omitted)
        engine: Optional pre-built engine; one is created from ``settings`` otherwise
        flows: Flow graphs to publish at startup
        cors_origins: Optional list of allowed CORS origins

    Returns:
        Configured FastAPI application

    Raises:
        FlowValidationError: If one of ``flows`` fails validation
    """
    app = FastAPI(
        title="USSD Flow Engine",
        description="REST API for running and validating USSD flows",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Configure CORS
    if cors_origins is None:
        cors_origins = ["*"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if engine is None:
        settings = settings or EngineSettings()
        app_state.events = InMemoryEventSink(max_events=10000)
        app_state.executor = _create_executor(settings)
        engine = SessionEngine(
            settings=settings,
            event_sink=CompositeEventSink([app_state.events, LoggingEventSink()]),
            action_executor=app_state.executor,
        )
    else:
        settings = engine.settings
        app_state.executor = None
        app_state.events = None
        if isinstance(engine.event_sink, InMemoryEventSink):
            app_state.events = engine.event_sink

    app_state.settings = settings
    app_state.engine = engine
    app_state.sweeper = ExpirySweeper(
        engine, settings.sweep_interval_seconds, settings.session_retention_seconds
    )

    published = [engine.publish_flow(flow) for flow in flows or ()]
    if published:
        logger.info("startup_flows_published", flow_ids=[flow.id for flow in published])

    # Register routes
    _register_routes(app)

    return app


def _register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance
    """
    from .flow_routes import flow_router
    from .routes import router as sessions_router

    app.include_router(sessions_router)
    app.include_router(flow_router)

    @app.get("/health")  # type: ignore[misc]
    async def health_check() -> dict[str, Any]:
        """Health check endpoint.

        Returns:
            Health status information
        """
        engine = app_state.engine
        return {
            "status": "healthy",
            "version": API_VERSION,
            "published_flows": len(engine.registry.list()) if engine else 0,
            "active_sessions": len(engine.store.get_active_sessions()) if engine else 0,
            "sweeper_running": app_state.sweeper.running if app_state.sweeper else False,
        }

    @app.get("/metrics")  # type: ignore[misc]
    async def metrics() -> Response:
        """Prometheus exposition of the engine metrics."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.get("/")  # type: ignore[misc]
    async def root() -> dict[str, Any]:
        """Root endpoint.

        Returns:
            Welcome message and API information
        """
        return {
            "message": "Welcome to the USSD Flow Engine API",
            "version": API_VERSION,
            "docs_url": "/docs",
        }


def get_app_state() -> AppState:
    """Get the application state.

    Returns:
        Current application state
    """
    return app_state
