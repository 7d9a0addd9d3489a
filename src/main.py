"""FastAPI application entry point.

VoiceDesk - Browser voice agents with tool calling.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from src.api.routes import health, metrics
from src.api.websocket.voice_stream import session_registry, voice_stream_endpoint
from src.config import get_settings
from src.db.session import close_db, init_db
from src.logging_config import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup:
    - Initialize logging
    - Initialize database

    Shutdown:
    - End active voice sessions
    - Close database connections
    """
    settings = get_settings()

    # Startup
    setup_logging(
        level=settings.log_level,
        enable_file=settings.is_production,
    )
    await init_db()

    yield

    # Shutdown
    await session_registry.close_all()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="VoiceDesk API",
        description="Real-time browser voice agents",
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

    # Health check routes
    app.include_router(health.router, tags=["Health"])

    # Metrics endpoint for Prometheus scraping
    app.include_router(metrics.router, tags=["Observability"])

    # WebSocket endpoint for browser voice calls
    @app.websocket("/ws/voice")
    async def voice_ws(websocket: WebSocket):
        """WebSocket endpoint for browser voice sessions."""
        await voice_stream_endpoint(websocket)

    return app


# Application instance
app = create_app()
