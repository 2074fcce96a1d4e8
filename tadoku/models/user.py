"""
Tadoku Backend — User SQLAlchemy Model
=======================================

What:  ORM model for the `users` table, holding the generation quota state.
Who:   Read and written only by the ledger store on behalf of QuotaTracker.

Quota columns:
    - generation_count:   generations counted on the day of last_generation_at
    - last_generation_at: instant of the last counted generation (UTC), NULL
                          until the first one
    The stored count is NOT reset at midnight. Readers derive the effective
    count by comparing last_generation_at with the start of the current day
    in the reference timezone; the next successful commit overwrites both
    columns.
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column

from tadoku.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        unique=True,
        comment="Login identity, managed by the upstream auth service",
    )

    generation_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default=text("0"),
        comment="Generations counted on the day of last_generation_at",
    )

    last_generation_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        comment="When the last counted generation happened (UTC)",
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

    def __repr__(self) -> str:
        return (
            f"<User(id={self.id}, generation_count={self.generation_count}, "
            f"last_generation_at='{self.last_generation_at}')>"
        )
