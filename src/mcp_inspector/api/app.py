"""REST API application factory."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mcp_inspector import __version__
from mcp_inspector.api.deps import SESSION_HEADER
from mcp_inspector.api.errors import setup_error_handlers
from mcp_inspector.api.middleware import REQUEST_ID_HEADER, RequestContextMiddleware
from mcp_inspector.api.routers import (
    connect_router,
    events_router,
    health_router,
    session_router,
    tool_router,
)
from mcp_inspector.config.models import ServerConfig

if TYPE_CHECKING:
    from mcp_inspector.logging import InspectorLogger
    from mcp_inspector.session import SessionManager

API_PREFIX = "/api"


def create_app(
    session_manager: "SessionManager",
    config: ServerConfig | None = None,
    logger: "InspectorLogger | None" = None,
    manage_lifecycle: bool = True,
) -> FastAPI:
    """Create FastAPI application with all routes.

    Args:
        session_manager: Owner of all browser sessions
        config: Server configuration
        logger: Optional logger
        manage_lifecycle: Start the idle reaper on startup and close every
            session on shutdown

    Returns:
        Configured FastAPI application
    """
    config = config or ServerConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if manage_lifecycle:
            session_manager.start_reaper()
        try:
            yield
        finally:
            if manage_lifecycle:
                await session_manager.shutdown()

    app = FastAPI(
        title=config.title,
        version=__version__,
        docs_url="/docs" if config.docs_enabled else None,
        redoc_url="/redoc" if config.docs_enabled else None,
        openapi_url="/openapi.json" if config.docs_enabled else None,
        lifespan=lifespan,
    )

    app.state.session_manager = session_manager
    app.state.config = config
    app.state.logger = logger

    # Order matters - first added is innermost
    app.add_middleware(RequestContextMiddleware)
    if config.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins,
            allow_credentials="*" not in config.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[REQUEST_ID_HEADER, SESSION_HEADER],
        )

    setup_error_handlers(app)

    app.include_router(connect_router, prefix=API_PREFIX)
    app.include_router(tool_router, prefix=API_PREFIX)
    app.include_router(session_router, prefix=API_PREFIX)
    app.include_router(health_router)
    app.include_router(events_router)

    return app
