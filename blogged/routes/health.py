"""
Blogged Backend — Health Check and Banner Routes
=================================================

What:  GET /health for probes and GET / as a human-readable banner.
How:   The health check runs SELECT 1 on the engine. The database is the
       only hard dependency: unreachable means unhealthy (HTTP 503).
"""

import logging
import time

from fastapi import APIRouter, Response, status
from sqlalchemy import text

from blogged import __version__
from blogged.database import engine, utcnow
from blogged.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", summary="Service banner")
async def root() -> dict:
    return {"message": "Blogged API is running", "timestamp": utcnow().isoformat()}


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Reports database connectivity and uptime. Returns 503 when the database is down.",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
