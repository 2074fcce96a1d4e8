"""
Tadoku Backend — Daily Generation Quota Tracker
================================================

What:  Gates calls to the text generator with a per-user daily limit.
Who:   StoryService.generate_story (gate + commit) and the
       /users/me/generation-status route (read-only status).

Protocol:
    reservation = await quota_tracker.check_and_reserve(db, user_id, now)
    text = await generator.generate_story(prompt)      # external call
    ... persist the story ...
    await quota_tracker.commit(db, reservation, now)    # best effort

Effective count:
    The stored counter belongs to the calendar day (reference timezone) of
    last_generation_at. If that instant is before day_start(now), or there
    is no last generation, the effective count is 0; otherwise it is the
    stored count. Nothing is reset eagerly: commit simply writes
    effective_count + 1 together with the new timestamp.

Concurrency:
    Check and commit are separate statements without a row lock, with the
    generation call in between. Two racing requests of one user can both
    pass the gate and both write the same incremented value. That
    over-admission is accepted.

Partial failure:
    If commit fails the story already exists and is returned to the user.
    The failure is logged and the generation goes uncounted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.config import settings
from tadoku.exceptions import (
    GenerationLimitExceededError,
    NotFoundError,
    StoreUnavailableError,
)
from tadoku.services.ledger_store import LedgerStore, QuotaState, ledger_store
from tadoku.timeutil import day_start, ensure_utc, get_reference_timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaReservation:
    """Proceed token returned by a successful gate check."""

    user_id: int
    effective_count: int
    limit: int
    checked_at: datetime

    @property
    def remaining_after_commit(self) -> int:
        return max(self.limit - self.effective_count - 1, 0)


@dataclass(frozen=True)
class GenerationStatus:
    current_count: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.current_count, 0)


class QuotaTracker:
    """Read-modify-write quota logic over the durable user record."""

    def __init__(
        self,
        store: LedgerStore,
        daily_limit: int,
        reference_tz: Optional[tzinfo] = None,
    ):
        if daily_limit <= 0:
            raise ValueError(f"daily generation limit must be positive, got {daily_limit}")
        self.store = store
        self.daily_limit = daily_limit
        self.reference_tz = reference_tz or get_reference_timezone()

    def effective_count(self, state: QuotaState, now: datetime) -> int:
        """Applies the lazy day-boundary reset to a stored counter."""
        if state.last_generation_at is None:
            return 0
        if ensure_utc(state.last_generation_at) < day_start(now, self.reference_tz):
            return 0
        return state.generation_count

    async def _load_state(self, db: AsyncSession, user_id: int) -> QuotaState:
        state = await self.store.get_quota_state(db, user_id)
        if state is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return state

    async def check_and_reserve(
        self,
        db: AsyncSession,
        user_id: int,
        now: datetime,
        limit: Optional[int] = None,
    ) -> QuotaReservation:
        """
        Decides whether `user_id` may trigger one more generation today.

        Returns:
            QuotaReservation carrying the effective count seen at check time.

        Raises:
            GenerationLimitExceededError: effective count >= limit
            NotFoundError: the user record does not exist
            StoreUnavailableError: the user record could not be read
        """
        limit = self.daily_limit if limit is None else limit
        if limit <= 0:
            raise ValueError(f"daily generation limit must be positive, got {limit}")

        state = await self._load_state(db, user_id)
        current = self.effective_count(state, now)

        if current >= limit:
            logger.info(
                "Generation limit reached for user %d (%d/%d)", user_id, current, limit
            )
            raise GenerationLimitExceededError(limit=limit, current_count=current)

        return QuotaReservation(
            user_id=user_id,
            effective_count=current,
            limit=limit,
            checked_at=now,
        )

    async def commit(
        self,
        db: AsyncSession,
        reservation: QuotaReservation,
        now: datetime,
    ) -> bool:
        """
        Records one successful generation. Never raises for store failures.

        The UPDATE runs in a SAVEPOINT: if it fails, only the savepoint is
        rolled back and the surrounding request transaction (holding the new
        story) can still commit.

        Returns:
            True if the counter was written, False if the failure was swallowed.
        """
        new_count = reservation.effective_count + 1
        try:
            async with db.begin_nested():
                updated = await self.store.update_quota_state(
                    db, reservation.user_id, new_count, now
                )
        except (StoreUnavailableError, SQLAlchemyError) as e:
            logger.warning(
                "Failed to record generation for user %d; it will not count "
                "against today's quota: %s",
                reservation.user_id,
                getattr(e, "message", str(e)),
            )
            return False

        if not updated:
            logger.warning(
                "Generation for user %d not recorded: user row no longer exists",
                reservation.user_id,
            )
            return False

        logger.info(
            "Recorded generation %d/%d for user %d",
            new_count,
            reservation.limit,
            reservation.user_id,
        )
        return True

    async def get_status(
        self, db: AsyncSession, user_id: int, now: datetime
    ) -> GenerationStatus:
        """Today's effective count and the configured limit, without side effects."""
        state = await self._load_state(db, user_id)
        return GenerationStatus(
            current_count=self.effective_count(state, now),
            limit=self.daily_limit,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
quota_tracker = QuotaTracker(store=ledger_store, daily_limit=settings.daily_generation_limit)
