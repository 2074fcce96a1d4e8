"""
Tadoku Backend — Story SQLAlchemy Model
========================================

What:  ORM model for the `stories` table (one generated reading passage).
Who:   Created by StoryService after a successful generation; looked up by
       the ledger store's ownership check before any reading event is written.

word_count is computed once at creation (whitespace-separated tokens) and
copied into each reading event at the moment it is written.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from tadoku.database import Base


class Story(Base):
    __tablename__ = "stories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Owner; every lookup filters on it",
    )

    title: Mapped[str] = mapped_column(String(500), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    word_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=text("CURRENT_TIMESTAMP"),
    )

    # Story listing: WHERE user_id = ? ORDER BY created_at DESC LIMIT ? OFFSET ?
    __table_args__ = (
        Index("idx_stories_user_created_at", "user_id", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Story(id={self.id}, user_id={self.user_id}, word_count={self.word_count})>"
