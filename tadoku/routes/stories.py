"""
Tadoku Backend — Story Route Handlers
======================================

What:  Story generation, the story library, and the reading ledger actions
       (mark as read, undo last read) on a single story.
How:   Each handler delegates to one service; ownership is enforced inside
       the services, so another user's story is a plain 404 here.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.database import get_db_session
from tadoku.routes.deps import get_current_user_id, get_now
from tadoku.schemas.common import ErrorResponse
from tadoku.schemas.story import (
    GenerateStoryRequest,
    MarkReadRequest,
    ReadStatusResponse,
    StoryDetailResponse,
    StoryListResponse,
    StoryResponse,
)
from tadoku.services.reading_ledger import reading_ledger
from tadoku.services.story_service import story_service
from tadoku.timeutil import ensure_utc

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/stories", tags=["Stories"])


@router.post(
    "",
    response_model=StoryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Empty or oversized prompt", "model": ErrorResponse},
        429: {"description": "Daily generation limit reached", "model": ErrorResponse},
        503: {"description": "Generator or data store unavailable", "model": ErrorResponse},
    },
    summary="Generate a new story",
)
async def generate_story(
    request: GenerateStoryRequest,
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db_session),
) -> StoryResponse:
    """Counts against the daily generation limit only when the story was created."""
    return await story_service.generate_story(db, user_id, request.prompt, now)


@router.get(
    "",
    response_model=StoryListResponse,
    summary="List the caller's stories, newest first",
)
async def list_stories(
    response: Response,
    page: int = Query(default=1, description="1-based page; values below 1 mean 1"),
    limit: int = Query(default=0, description="Page size; values below 1 use the default"),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> StoryListResponse:
    result = await story_service.list_stories(db, user_id, page=page, limit=limit)
    response.headers["X-Total-Count"] = str(result.total_count)
    return result


@router.get(
    "/{story_id}",
    response_model=StoryDetailResponse,
    responses={404: {"description": "Story not found", "model": ErrorResponse}},
    summary="Get one story with its read count",
)
async def get_story(
    story_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> StoryDetailResponse:
    return await story_service.get_story(db, user_id, story_id)


@router.post(
    "/{story_id}/read",
    response_model=ReadStatusResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Story not found", "model": ErrorResponse}},
    summary="Mark a story as read",
)
async def mark_story_read(
    story_id: int,
    body: MarkReadRequest | None = Body(default=None),
    user_id: int = Depends(get_current_user_id),
    now: datetime = Depends(get_now),
    db: AsyncSession = Depends(get_db_session),
) -> ReadStatusResponse:
    """Every call appends a new reading event; re-reading a story counts again."""
    word_count = body.word_count if body is not None else None
    event = await reading_ledger.mark_read(db, user_id, story_id, now, word_count=word_count)
    read_count = await reading_ledger.get_story_read_count(db, user_id, story_id)
    return ReadStatusResponse(
        story_id=event.story_id,
        event_id=event.id,
        word_count=event.word_count,
        read_at=ensure_utc(event.read_at),
        read_count=read_count,
    )


@router.delete(
    "/{story_id}/read/latest",
    response_model=ReadStatusResponse,
    responses={404: {"description": "No reading record to undo", "model": ErrorResponse}},
    summary="Undo the most recent reading of a story",
)
async def undo_last_read(
    story_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db_session),
) -> ReadStatusResponse:
    event = await reading_ledger.undo_last_read(db, user_id, story_id)
    read_count = await reading_ledger.get_story_read_count(db, user_id, story_id)
    return ReadStatusResponse(
        story_id=event.story_id,
        event_id=event.id,
        word_count=event.word_count,
        read_at=ensure_utc(event.read_at),
        read_count=read_count,
    )
