"""
API Health Check Endpoint
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from eval_engine.api.v1.schemas.responses import HealthResponse
from eval_engine.core.config import settings

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="API Health Check",
    description="Report API status and which LLM providers have server-side keys",
    tags=["health"],
)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Providers without a configured key are still usable when the run request
    supplies credentials, so they never make the service unhealthy.
    """
    configured = sorted(settings.provider_api_keys())
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=settings.api__version,
        environment=settings.environment,
        components={
            "api": {"status": "healthy", "version": settings.api__version},
            "providers": {
                "status": "healthy" if configured else "unconfigured",
                "configured": configured,
            },
        },
    )
