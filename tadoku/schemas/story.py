"""
Tadoku Backend — Story Schemas
===============================

What:  API contract for story generation, listing, detail and the
       "mark as read" / "undo last read" actions.
Who:   Returned by tadoku.routes.stories; built by StoryService and the
       story routes from ORM rows.

Schemas are kept separate from the SQLAlchemy models so the API can expose
computed fields (read_count, pagination metadata) without touching tables.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class GenerateStoryRequest(BaseModel):
    """Body of POST /api/v1/stories."""

    prompt: str = Field(
        description="What the story should be about (topic, level, vocabulary)",
    )


class MarkReadRequest(BaseModel):
    """
    Optional body of POST /api/v1/stories/{id}/read.

    word_count overrides the story's own count, e.g. when only part of a
    long story was read. Omit it to credit the whole story.
    """

    word_count: Optional[int] = Field(
        default=None,
        description="Words to credit for this reading (defaults to the story's word count)",
    )


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class StoryResponse(BaseModel):
    """Full story. Returned by POST /api/v1/stories with 201 Created."""

    id: int = Field(description="Story identifier")
    title: str = Field(description="Title (the prompt the story was generated from)")
    content: str = Field(description="Generated story text")
    word_count: int = Field(description="Whitespace-separated tokens in content")
    created_at: datetime = Field(description="Creation timestamp (UTC ISO 8601)")

    model_config = {"from_attributes": True}


class StoryDetailResponse(StoryResponse):
    """GET /api/v1/stories/{id}: the story plus how often the caller read it."""

    read_count: int = Field(description="Number of reading events for this story")


class StoryListItem(BaseModel):
    """Compact story representation for the library list."""

    id: int = Field(description="Story identifier")
    title: str = Field(description="Story title")
    word_count: int = Field(description="Words in the story")
    created_at: datetime = Field(description="Creation timestamp (UTC)")

    model_config = {"from_attributes": True}


class StoryListResponse(BaseModel):
    """
    Offset-paginated story list, newest first.

    Pages past the end are valid and return an empty `stories` array.
    """

    stories: List[StoryListItem] = Field(description="Stories on this page")
    total_count: int = Field(description="Stories owned by the user")
    total_pages: int = Field(description="0 when the user has no stories")
    current_page: int = Field(description="1-based page number after sanitizing")
    limit: int = Field(description="Page size after sanitizing")


class ReadStatusResponse(BaseModel):
    """Result of marking a story as read or undoing the latest reading."""

    story_id: int = Field(description="Story the event belongs to")
    event_id: int = Field(description="Reading event created or removed")
    word_count: int = Field(description="Words credited by that event")
    read_at: datetime = Field(description="When the reading happened (UTC)")
    read_count: int = Field(description="Reading events left for this story")
