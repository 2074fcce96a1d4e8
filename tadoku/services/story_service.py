"""
Tadoku Backend — Story Service (Generation Orchestrator)
=========================================================

What:  Generate → persist → count workflow for reading passages, plus the
       story library queries.
Who:   Called by tadoku.routes.stories.

Orchestration Flow (POST /api/v1/stories):
    ┌────────────┐    ┌─────────────┐    ┌──────────────┐    ┌────────────┐
    │ Quota gate │───▶│  Gemini     │───▶│  Store story │───▶│ Quota      │
    │ (reserve)  │    │  (generate) │    │  (flush)     │    │ commit     │
    └────────────┘    └─────────────┘    └──────────────┘    └────────────┘

    Limit reached      → GenerationLimitExceededError, generator never called
    Generator fails    → LLMServiceError / CircuitBreakerOpenError, nothing counted
    Store fails        → StoreUnavailableError, nothing counted
    Quota commit fails → logged; the story is still returned

Like the other services it is stateless: the session and `now` arrive with
every call.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.config import settings
from tadoku.exceptions import NotFoundError, ValidationError
from tadoku.schemas.story import (
    StoryDetailResponse,
    StoryListItem,
    StoryListResponse,
    StoryResponse,
)
from tadoku.services.gemini_service import gemini_service
from tadoku.services.ledger_store import LedgerStore, ledger_store
from tadoku.services.llm_base import StoryGenerator
from tadoku.services.pagination import paginate
from tadoku.services.quota_tracker import QuotaTracker, quota_tracker
from tadoku.services.reading_ledger import ReadingLedger, reading_ledger
from tadoku.timeutil import ensure_utc

logger = logging.getLogger(__name__)


def count_words(text: str) -> int:
    """Whitespace-separated tokens."""
    return len(text.split())


class StoryService:
    def __init__(
        self,
        generator: StoryGenerator,
        quota: QuotaTracker,
        ledger: ReadingLedger,
        store: LedgerStore,
        max_prompt_length: int = 500,
        default_page_limit: int = 10,
        max_page_limit: int = 100,
    ):
        self.generator = generator
        self.quota = quota
        self.ledger = ledger
        self.store = store
        self.max_prompt_length = max_prompt_length
        self.default_page_limit = default_page_limit
        self.max_page_limit = max_page_limit

    def _validate_prompt(self, prompt: str) -> str:
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError(message="prompt must not be empty", field="prompt")
        if len(prompt) > self.max_prompt_length:
            raise ValidationError(
                message=f"prompt must be at most {self.max_prompt_length} characters",
                field="prompt",
                context={"max_length": self.max_prompt_length},
            )
        return prompt

    async def generate_story(
        self,
        db: AsyncSession,
        user_id: int,
        prompt: str,
        now: datetime,
    ) -> StoryResponse:
        """
        Gate, generate, persist and count one story.

        Raises:
            ValidationError: empty or oversized prompt
            GenerationLimitExceededError: today's limit already reached
            NotFoundError: unknown user
            LLMServiceError / CircuitBreakerOpenError: generator failed
            StoreUnavailableError: the story could not be stored
        """
        prompt = self._validate_prompt(prompt)

        # ── Step 1: Quota gate ────────────────────────────────────────────
        reservation = await self.quota.check_and_reserve(db, user_id, now)

        # ── Step 2: Generate ──────────────────────────────────────────────
        content = await self.generator.generate_story(prompt)
        word_count = count_words(content)

        # ── Step 3: Persist ───────────────────────────────────────────────
        story = await self.store.create_story(db, user_id, prompt, content, word_count, now)
        logger.info("Story %d created for user %d (%d words)", story.id, user_id, word_count)

        # ── Step 4: Count the generation (best effort) ────────────────────
        await self.quota.commit(db, reservation, now)

        return StoryResponse(
            id=story.id,
            title=story.title,
            content=story.content,
            word_count=story.word_count,
            created_at=ensure_utc(story.created_at),
        )

    async def list_stories(
        self,
        db: AsyncSession,
        user_id: int,
        page: int = 1,
        limit: int = 0,
    ) -> StoryListResponse:
        """Newest-first page of the user's stories. Out-of-range pages are empty."""
        total_count = await self.store.count_stories(db, user_id)
        page_info = paginate(
            page,
            min(limit, self.max_page_limit),
            total_count,
            default_limit=self.default_page_limit,
        )
        stories = await self.store.list_stories(db, user_id, page_info.offset, page_info.limit)

        return StoryListResponse(
            stories=[
                StoryListItem(
                    id=story.id,
                    title=story.title,
                    word_count=story.word_count,
                    created_at=ensure_utc(story.created_at),
                )
                for story in stories
            ],
            total_count=total_count,
            total_pages=page_info.total_pages,
            current_page=page_info.current_page,
            limit=page_info.limit,
        )

    async def get_story(
        self, db: AsyncSession, user_id: int, story_id: int
    ) -> StoryDetailResponse:
        """
        Raises:
            NotFoundError: story missing or owned by someone else
        """
        story = await self.store.get_owned_story(db, story_id, user_id)
        if story is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))

        read_count = await self.ledger.get_story_read_count(db, user_id, story_id)

        return StoryDetailResponse(
            id=story.id,
            title=story.title,
            content=story.content,
            word_count=story.word_count,
            created_at=ensure_utc(story.created_at),
            read_count=read_count,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
story_service = StoryService(
    generator=gemini_service,
    quota=quota_tracker,
    ledger=reading_ledger,
    store=ledger_store,
    max_prompt_length=settings.max_prompt_length,
    default_page_limit=settings.pagination_default_limit,
    max_page_limit=settings.pagination_max_limit,
)
