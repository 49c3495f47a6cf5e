"""Liveness probe."""

from datetime import UTC, datetime

from fastapi import APIRouter

from passgate import __version__
from passgate.api.schemas import HealthResponse, HealthStatus

router = APIRouter()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness",
    description="200 while the process is up. The database is not queried.",
)
async def health() -> HealthResponse:
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        timestamp=datetime.now(UTC),
        version=__version__,
    )
