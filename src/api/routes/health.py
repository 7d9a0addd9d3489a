"""Health check endpoints.

Provides:
- Basic health check (GET /health)
- Detailed health check with dependency status (GET /health/detailed)
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import text

from src.api.websocket.voice_stream import session_registry
from src.config import Settings, get_settings
from src.db.session import get_session

router = APIRouter()


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: str
    checks: dict[str, str]
    active_sessions: int
    version: str


def _configured(secret) -> str:
    return "configured" if secret is not None and secret.get_secret_value() else "missing"


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint.

    Returns:
        Simple status indicating the API is running.
    """
    return HealthResponse(status="healthy")


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> DetailedHealthResponse:
    """Detailed health check including dependency status.

    Checks:
    - Database connectivity
    - Provider configuration status (keys present, APIs are not called)

    Returns:
        Status with individual component checks.
    """
    checks = {}

    # Database check
    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    checks["groq"] = _configured(settings.groq_api_key)
    checks["sarvam"] = _configured(settings.sarvam_api_key)
    checks["elevenlabs"] = _configured(settings.elevenlabs_api_key)
    checks["google_sheets"] = _configured(settings.google_sheets_access_token)

    status = "healthy" if checks["database"] == "ok" else "degraded"

    return DetailedHealthResponse(
        status=status,
        checks=checks,
        active_sessions=session_registry.active_count(),
        version="0.1.0",
    )
