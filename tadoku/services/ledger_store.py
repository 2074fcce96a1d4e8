"""
Tadoku Backend — Ledger Store Adapter
======================================

What:  The persistence adapter behind the usage-accounting services.
How:   Each method issues exactly one statement against the caller's
       AsyncSession and returns plain values:
           - a row or dataclass when found
           - None when no row matches
           - StoreUnavailableError (raised) for any driver/database failure
       The quota tracker, reading ledger and statistics engine therefore
       never see SQLAlchemy exceptions or "no rows" sentinels.
Who:   QuotaTracker, ReadingLedger, StatisticsEngine, StoryService.

Timestamps:
    Every bound and every written instant is converted to UTC before it is
    bound to a statement. Values read back are normalized with ensure_utc.

Retries:
    None. A failed statement is logged with its operation name and raised.
"""

import functools
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, Sequence, TypeVar

from sqlalchemy import case, delete, func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.exceptions import StoreUnavailableError
from tadoku.models import ReadingEvent, Story, User
from tadoku.timeutil import TimeWindow, ensure_utc, to_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class QuotaState:
    """A user's stored generation counter, as persisted (not yet day-adjusted)."""

    user_id: int
    generation_count: int
    last_generation_at: Optional[datetime]


def store_operation(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Wraps a store method so driver failures surface as StoreUnavailableError.

    The positional arguments after the session (user ids, story ids, ...)
    are logged with the failure; the client only ever sees the generic
    StoreUnavailableError message.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: "LedgerStore", db: AsyncSession, *args: Any, **kwargs: Any) -> T:
            try:
                return await func(self, db, *args, **kwargs)
            except (SQLAlchemyError, OSError) as e:
                logger.error(
                    "Ledger store operation '%s' failed (args=%s): %s",
                    operation,
                    args,
                    str(e),
                    exc_info=True,
                )
                raise StoreUnavailableError(
                    context={"operation": operation, "error_type": type(e).__name__},
                ) from e

        return wrapper

    return decorator


class LedgerStore:
    """
    Request/response interface to the reading ledger and user quota rows.

    Stateless: the session is passed into every call, so one instance is
    shared by all requests.
    """

    # ── Reading events ────────────────────────────────────────────────────

    @store_operation("append_event")
    async def append_event(
        self,
        db: AsyncSession,
        user_id: int,
        story_id: int,
        word_count: int,
        read_at: datetime,
    ) -> ReadingEvent:
        event = ReadingEvent(
            user_id=user_id,
            story_id=story_id,
            word_count=word_count,
            read_at=to_utc(read_at),
        )
        db.add(event)
        await db.flush()  # assigns the autoincrement id
        return event

    @store_operation("delete_event")
    async def delete_event(self, db: AsyncSession, event_id: int, user_id: int) -> bool:
        """Deletes one event, only if it belongs to `user_id`. True if a row went away."""
        result = await db.execute(
            delete(ReadingEvent).where(
                ReadingEvent.id == event_id,
                ReadingEvent.user_id == user_id,
            )
        )
        return (result.rowcount or 0) > 0

    @store_operation("count_events")
    async def count_events(self, db: AsyncSession, user_id: int, story_id: int) -> int:
        result = await db.execute(
            select(func.count(ReadingEvent.id)).where(
                ReadingEvent.user_id == user_id,
                ReadingEvent.story_id == story_id,
            )
        )
        return int(result.scalar() or 0)

    @store_operation("latest_event")
    async def latest_event(
        self, db: AsyncSession, user_id: int, story_id: int
    ) -> Optional[ReadingEvent]:
        """Most recent event of the pair: read_at DESC, ties broken by id DESC."""
        result = await db.execute(
            select(ReadingEvent)
            .where(
                ReadingEvent.user_id == user_id,
                ReadingEvent.story_id == story_id,
            )
            .order_by(ReadingEvent.read_at.desc(), ReadingEvent.id.desc())
            .limit(1)
        )
        return result.scalars().first()

    # ── Aggregates ────────────────────────────────────────────────────────

    @store_operation("sum_word_counts")
    async def sum_word_counts(
        self,
        db: AsyncSession,
        user_id: int,
        window: Optional[TimeWindow] = None,
    ) -> int:
        """
        SUM(word_count) for the user, optionally restricted to [start, end).

        Returns 0 (never None) when no rows match.
        """
        stmt = select(func.coalesce(func.sum(ReadingEvent.word_count), 0)).where(
            ReadingEvent.user_id == user_id
        )
        if window is not None:
            stmt = stmt.where(
                ReadingEvent.read_at >= to_utc(window.start),
                ReadingEvent.read_at < to_utc(window.end),
            )
        result = await db.execute(stmt)
        return int(result.scalar() or 0)

    @store_operation("sum_word_counts_by_day")
    async def sum_word_counts_by_day(
        self,
        db: AsyncSession,
        user_id: int,
        windows: Sequence[TimeWindow],
    ) -> List[int]:
        """
        One grouped SUM over contiguous, ascending day windows.

        The bucket of a row is the index of the first window whose end lies
        after its read_at. The boundaries come from the reference timezone,
        so the grouping is exact regardless of the database session's own
        timezone or dialect date functions.

        Returns:
            A list aligned with `windows`; buckets without rows are 0.
        """
        if not windows:
            return []

        bucket = case(
            *[
                (ReadingEvent.read_at < to_utc(window.end), index)
                for index, window in enumerate(windows)
            ],
            else_=len(windows),
        ).label("bucket")

        stmt = (
            select(bucket, func.coalesce(func.sum(ReadingEvent.word_count), 0))
            .where(
                ReadingEvent.user_id == user_id,
                ReadingEvent.read_at >= to_utc(windows[0].start),
                ReadingEvent.read_at < to_utc(windows[-1].end),
            )
            .group_by(text("bucket"))
        )
        result = await db.execute(stmt)

        totals = [0] * len(windows)
        for index, total in result.all():
            if index is not None and 0 <= int(index) < len(windows):
                totals[int(index)] = int(total or 0)
        return totals

    # ── User quota state ──────────────────────────────────────────────────

    @store_operation("get_quota_state")
    async def get_quota_state(self, db: AsyncSession, user_id: int) -> Optional[QuotaState]:
        result = await db.execute(
            select(User.id, User.generation_count, User.last_generation_at).where(
                User.id == user_id
            )
        )
        row = result.first()
        if row is None:
            return None
        return QuotaState(
            user_id=row.id,
            generation_count=int(row.generation_count or 0),
            last_generation_at=(
                ensure_utc(row.last_generation_at) if row.last_generation_at else None
            ),
        )

    @store_operation("update_quota_state")
    async def update_quota_state(
        self,
        db: AsyncSession,
        user_id: int,
        generation_count: int,
        last_generation_at: datetime,
    ) -> bool:
        """Overwrites both quota columns. False when the user row does not exist."""
        result = await db.execute(
            update(User)
            .where(User.id == user_id)
            .values(
                generation_count=generation_count,
                last_generation_at=to_utc(last_generation_at),
                updated_at=to_utc(last_generation_at),
            )
        )
        return (result.rowcount or 0) > 0

    # ── Stories ───────────────────────────────────────────────────────────

    @store_operation("create_story")
    async def create_story(
        self,
        db: AsyncSession,
        user_id: int,
        title: str,
        content: str,
        word_count: int,
        created_at: datetime,
    ) -> Story:
        created_at = to_utc(created_at)
        story = Story(
            user_id=user_id,
            title=title,
            content=content,
            word_count=word_count,
            created_at=created_at,
            updated_at=created_at,
        )
        db.add(story)
        await db.flush()
        return story

    @store_operation("count_stories")
    async def count_stories(self, db: AsyncSession, user_id: int) -> int:
        result = await db.execute(select(func.count(Story.id)).where(Story.user_id == user_id))
        return int(result.scalar() or 0)

    @store_operation("list_stories")
    async def list_stories(
        self, db: AsyncSession, user_id: int, offset: int, limit: int
    ) -> List[Story]:
        """Newest first; id DESC breaks created_at ties."""
        result = await db.execute(
            select(Story)
            .where(Story.user_id == user_id)
            .order_by(Story.created_at.desc(), Story.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all())

    @store_operation("get_owned_story")
    async def get_owned_story(
        self, db: AsyncSession, story_id: int, user_id: int
    ) -> Optional[Story]:
        """The story if it exists AND belongs to `user_id`, else None."""
        result = await db.execute(
            select(Story).where(Story.id == story_id, Story.user_id == user_id)
        )
        return result.scalar_one_or_none()


# ── Singleton Instance ────────────────────────────────────────────────────
ledger_store = LedgerStore()
