"""
Tadoku Backend — Reading Ledger Engine
=======================================

What:  Records and undoes "mark as read" events.
Who:   Story routes (read / undo) and StoryService.get_story (read count).

Operations:
    mark_read            ownership check, then append (user, story, words, now)
    undo_last_read       delete the latest event of (user, story), owner-filtered
    get_story_read_count number of events of (user, story)

Both mark_read steps are separate statements (no cross-statement
transaction guarantees beyond the request session). Events have no
internal state: created, possibly removed once as "the latest", never edited.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.exceptions import NoReadingRecordError, NotFoundError, ValidationError
from tadoku.models import ReadingEvent
from tadoku.services.ledger_store import LedgerStore, ledger_store

logger = logging.getLogger(__name__)


class ReadingLedger:
    def __init__(self, store: LedgerStore):
        self.store = store

    async def mark_read(
        self,
        db: AsyncSession,
        user_id: int,
        story_id: int,
        now: datetime,
        word_count: Optional[int] = None,
    ) -> ReadingEvent:
        """
        Appends a reading event for a story owned by `user_id`.

        Args:
            word_count: Words to credit. Defaults to the story's own count.

        Raises:
            NotFoundError: story missing or owned by another user
            ValidationError: negative word_count
        """
        story = await self.store.get_owned_story(db, story_id, user_id)
        if story is None:
            raise NotFoundError(resource="story", resource_id=str(story_id))

        words = story.word_count if word_count is None else word_count
        if words < 0:
            raise ValidationError(
                message="word_count must be a non-negative integer",
                field="word_count",
            )

        event = await self.store.append_event(db, user_id, story.id, words, now)
        logger.info(
            "User %d read story %d (%d words, event %s)", user_id, story.id, words, event.id
        )
        return event

    async def undo_last_read(
        self, db: AsyncSession, user_id: int, story_id: int
    ) -> ReadingEvent:
        """
        Removes the most recent reading event of (user, story).

        Returns:
            The removed event.

        Raises:
            NoReadingRecordError: nothing to undo (no mutation performed), or
                the latest event disappeared between lookup and delete
        """
        latest = await self.store.latest_event(db, user_id, story_id)
        if latest is None:
            raise NoReadingRecordError(story_id=story_id)

        deleted = await self.store.delete_event(db, latest.id, user_id)
        if not deleted:
            # A concurrent undo removed it first.
            raise NoReadingRecordError(story_id=story_id, context={"event_id": latest.id})

        logger.info("User %d undid reading event %d for story %d", user_id, latest.id, story_id)
        return latest

    async def get_story_read_count(self, db: AsyncSession, user_id: int, story_id: int) -> int:
        return await self.store.count_events(db, user_id, story_id)


# ── Singleton Instance ────────────────────────────────────────────────────
reading_ledger = ReadingLedger(store=ledger_store)
