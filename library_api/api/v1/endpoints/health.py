import time
from datetime import datetime, timezone

from fastapi import APIRouter, status

from library_api.core.config import settings
from library_api.schemas.common_schema import HealthResponse

router = APIRouter(tags=["Health"], prefix=settings.API_V1_STR)

_started_at = time.monotonic()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Liveness probe. Does not require authentication.",
)
async def health_check():
    return HealthResponse(
        status="ok",
        version=settings.VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime=round(time.monotonic() - _started_at, 3),
    )
