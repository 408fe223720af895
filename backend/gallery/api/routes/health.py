"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from gallery.schemas.health import HealthResponse
from gallery.services.context import GatewayContext, get_context

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(ctx: GatewayContext = Depends(get_context)) -> HealthResponse:
    """Check application health.

    Returns:
        Status, server time, version and the Drive access mode.
    """
    return HealthResponse(
        status="ok",
        time=datetime.now(timezone.utc).isoformat(),
        version=ctx.settings.version,
        auth_mode=ctx.capability.mode,
    )
