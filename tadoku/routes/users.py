"""
Tadoku Backend — Current User Route Handlers
=============================================

What:  Reading statistics and daily generation status of the caller.
When:  The dashboard loads both on every visit; neither has side effects.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.database import get_db_session
from tadoku.routes.deps import get_current_user_id, get_now
from tadoku.schemas.common import ErrorResponse
from tadoku.schemas.stats import GenerationStatusResponse, StatsResponse
from tadoku.services.quota_tracker import quota_tracker
from tadoku.services.statistics import statistics_engine

router = APIRouter(prefix="/api/v1/users/me", tags=["Users"])


@router.get(
    "/stats",
    response_model=StatsResponse,
    responses={
        400: {"description": "days out of range", "model": ErrorResponse},
        503: {"description": "Data store unavailable", "model": ErrorResponse},
    },
    summary="Reading statistics for the caller",
)
async def get_stats(
    days: Optional[int] = Query(
        default=None,
        description="Length of the daily series ending today (default 7)",
    ),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db_session),
) -> StatsResponse:
    snapshot = await statistics_engine.compute_stats(db, user_id, now, days=days)
    return StatsResponse.model_validate(snapshot)


@router.get(
    "/generation-status",
    response_model=GenerationStatusResponse,
    summary="Generations used and remaining today",
)
async def get_generation_status(
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db_session),
) -> GenerationStatusResponse:
    generation_status = await quota_tracker.get_status(db, user_id, now)
    return GenerationStatusResponse(
        current_count=generation_status.current_count,
        limit=generation_status.limit,
        remaining=generation_status.remaining,
    )
