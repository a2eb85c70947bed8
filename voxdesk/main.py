"""FastAPI application entry point.

Voxdesk - AI phone receptionist for small professional offices.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from voxdesk.api.routes import health, plivo_webhook
from voxdesk.api.websocket.call_stream import call_stream_endpoint
from voxdesk.config import get_settings
from voxdesk.core.orchestrator import CallOrchestrator
from voxdesk.db.session import close_db, init_db
from voxdesk.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup:
    - Initialize logging
    - Initialize database
    - Wire the call orchestrator

    Shutdown:
    - End active calls
    - Close database connections
    """
    settings = get_settings()

    setup_logging(
        level=settings.log_level,
        enable_file=settings.is_production,
    )

    await init_db()

    # Tests may install their own orchestrator before startup
    if getattr(app.state, "orchestrator", None) is None:
        app.state.orchestrator = CallOrchestrator.from_settings(settings)

    yield

    await app.state.orchestrator.close_all()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Voxdesk API",
        description="AI phone receptionist call orchestration",
        version="0.1.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health checks and Prometheus scraping
    app.include_router(health.router, tags=["Health"])

    # Plivo webhook routes
    app.include_router(plivo_webhook.router, prefix="/api", tags=["Plivo"])

    @app.websocket("/ws/calls/{call_id}")
    async def call_ws(websocket: WebSocket, call_id: str):
        """WebSocket endpoint for a call's media stream."""
        await call_stream_endpoint(websocket, call_id, websocket.app.state.orchestrator)

    return app


# Application instance
app = create_app()
