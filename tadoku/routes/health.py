"""
Tadoku Backend — Health Check Route
====================================

What:  GET /health for container and load balancer probes.

Status levels:
    healthy:    database reachable and generator available
    degraded:   database reachable, generator down or circuit open
                (statistics and reading still work; generation does not)
    unhealthy:  database unreachable
"""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tadoku import __version__
from tadoku.database import engine
from tadoku.schemas.common import HealthResponse
from tadoku.services.gemini_service import gemini_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check() -> HealthResponse:
    db_status = "connected"
    generator_status = "available"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if gemini_service.circuit_breaker.state == gemini_service.circuit_breaker.OPEN:
        generator_status = "circuit_open"
    elif not await gemini_service.health_check():
        generator_status = "unavailable"

    if generator_status != "available" and overall == "healthy":
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        generator=generator_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
