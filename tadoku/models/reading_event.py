"""
Tadoku Backend — Reading Event SQLAlchemy Model
================================================

What:  ORM model for the append-only `reading_events` ledger.
Who:   Written by ReadingLedger.mark_read, deleted only by undo_last_read,
       aggregated by StatisticsEngine.

Lifecycle:
    1. Appended when a user marks a story as read (read_at = injected now)
    2. The single most recent event of a (user, story) pair may be deleted
    3. Never updated

Ordering:
    "Most recent" is read_at DESC, then id DESC. The id comes from an
    autoincrementing key (sqlite_autoincrement on SQLite, identity on
    PostgreSQL) so it never reuses a deleted value and always breaks
    timestamp ties in insertion order.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from tadoku.database import Base


class ReadingEvent(Base):
    __tablename__ = "reading_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    story_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("stories.id", ondelete="CASCADE"),
        nullable=False,
    )

    word_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Words credited for this read (non-negative)",
    )

    read_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the story was marked as read (UTC)",
    )

    # Window sums:   WHERE user_id = ? AND read_at >= ? AND read_at < ?
    # Latest event:  WHERE user_id = ? AND story_id = ? ORDER BY read_at DESC, id DESC
    __table_args__ = (
        Index("idx_reading_events_user_read_at", "user_id", "read_at"),
        Index("idx_reading_events_user_story_read_at", "user_id", "story_id", "read_at"),
        CheckConstraint("word_count >= 0", name="ck_reading_events_word_count_non_negative"),
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        return (
            f"<ReadingEvent(id={self.id}, user_id={self.user_id}, "
            f"story_id={self.story_id}, word_count={self.word_count}, read_at='{self.read_at}')>"
        )
