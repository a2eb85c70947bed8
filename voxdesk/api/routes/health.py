"""Health and observability endpoints.

Provides:
- Basic health check (GET /health)
- Detailed health check with dependency status (GET /health/detailed)
- Prometheus scrape endpoint (GET /metrics)
"""

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import text

from voxdesk.api.dependencies import get_orchestrator
from voxdesk.config import Settings, get_settings
from voxdesk.core.orchestrator import CallOrchestrator
from voxdesk.db.session import get_session
from voxdesk.observability.metrics import get_content_type, get_metrics

router = APIRouter()

VERSION = "0.1.0"


class HealthResponse(BaseModel):
    """Basic health check response."""

    status: str


class DetailedHealthResponse(BaseModel):
    """Detailed health check response."""

    status: str
    checks: dict[str, str]
    active_calls: int
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(status="healthy")


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def detailed_health_check(
    session: AsyncSession = Depends(get_session),
    settings: Settings = Depends(get_settings),
    orchestrator: CallOrchestrator = Depends(get_orchestrator),
) -> DetailedHealthResponse:
    """Detailed health check including dependency status.

    Checks:
    - Database connectivity
    - Which external services have credentials configured

    External APIs are not called from here.
    """
    checks = {}

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {type(e).__name__}"

    checks["groq"] = "configured" if settings.groq_api_key.get_secret_value() else "missing"
    checks["deepgram"] = (
        "configured" if settings.deepgram_api_key.get_secret_value() else "missing"
    )
    checks["plivo"] = "configured" if settings.plivo_auth_id else "missing"
    checks["elevenlabs"] = (
        "configured"
        if settings.elevenlabs_api_key and settings.elevenlabs_api_key.get_secret_value()
        else "missing"
    )
    checks["edge_tts"] = "enabled" if settings.edge_tts_enabled else "disabled"

    status = "healthy" if checks["database"] == "ok" else "degraded"

    return DetailedHealthResponse(
        status=status,
        checks=checks,
        active_calls=orchestrator.active_count,
        version=VERSION,
    )


@router.get("/metrics")
async def metrics() -> Response:
    """Metrics in Prometheus text format for scraping."""
    return Response(content=get_metrics(), media_type=get_content_type())
