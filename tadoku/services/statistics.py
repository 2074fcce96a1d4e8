"""
Tadoku Backend — Reading Statistics Engine
===========================================

What:  Computes a user's word-count statistics over overlapping windows.
Who:   GET /api/v1/users/me/stats.
When:  On every request; nothing is cached.

Windows (half-open, reference timezone, see tadoku.timeutil):
    today   [day_start(now), +1 day)
    week    Monday-start week containing now
    month   [first of month, first of next month)
    year    [Jan 1, Jan 1 of next year)
    total   every event of the user
    last N  one bucket per calendar day, N days ending today inclusive

Zero fill:
    The daily series is pre-filled with every ISO date key set to 0, then a
    single grouped sum overwrites the days that have events. The result
    always has exactly N keys, ordered oldest to newest.

Nesting:
    today ⊆ week ∩ month ∩ year and every window ⊆ total, so with
    non-negative word counts today <= week, month <= year <= total.
    Note week is not nested in month at month boundaries; only today is
    guaranteed to be bounded by both.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tadoku.config import settings
from tadoku.exceptions import ValidationError
from tadoku.services.ledger_store import LedgerStore, ledger_store
from tadoku.timeutil import (
    get_reference_timezone,
    last_n_day_windows,
    month_window,
    today_window,
    week_window,
    year_window,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StatisticsSnapshot:
    total_word_count: int
    today_word_count: int
    weekly_word_count: int
    monthly_word_count: int
    yearly_word_count: int
    daily_word_count_last_n_days: Dict[str, int] = field(default_factory=dict)


class StatisticsEngine:
    def __init__(
        self,
        store: LedgerStore,
        default_days: int = 7,
        max_days: int = 366,
        reference_tz: Optional[tzinfo] = None,
    ):
        self.store = store
        self.default_days = default_days
        self.max_days = max_days
        self.reference_tz = reference_tz or get_reference_timezone()

    async def daily_word_counts(
        self, db: AsyncSession, user_id: int, now: datetime, days: int
    ) -> Dict[str, int]:
        """`days` ISO-date keys ending today, each present even when zero."""
        buckets = last_n_day_windows(now, self.reference_tz, days)
        series = {day.isoformat(): 0 for day, _ in buckets}

        totals = await self.store.sum_word_counts_by_day(
            db, user_id, [window for _, window in buckets]
        )
        for (day, _), total in zip(buckets, totals):
            if total:
                series[day.isoformat()] = total
        return series

    async def compute_stats(
        self,
        db: AsyncSession,
        user_id: int,
        now: datetime,
        days: Optional[int] = None,
    ) -> StatisticsSnapshot:
        """
        Builds the full statistics snapshot for `user_id` as of `now`.

        Args:
            days: Length of the daily series (default from settings).

        Raises:
            ValidationError: days outside 1..max_days
            StoreUnavailableError: any aggregate query failed
        """
        days = self.default_days if days is None else days
        if days < 1 or days > self.max_days:
            raise ValidationError(
                message=f"days must be between 1 and {self.max_days}",
                field="days",
            )

        tz = self.reference_tz
        today = await self.store.sum_word_counts(db, user_id, today_window(now, tz))
        weekly = await self.store.sum_word_counts(db, user_id, week_window(now, tz))
        monthly = await self.store.sum_word_counts(db, user_id, month_window(now, tz))
        yearly = await self.store.sum_word_counts(db, user_id, year_window(now, tz))
        total = await self.store.sum_word_counts(db, user_id)
        series = await self.daily_word_counts(db, user_id, now, days)

        logger.debug(
            "Stats for user %d: today=%d week=%d month=%d year=%d total=%d",
            user_id, today, weekly, monthly, yearly, total,
        )

        return StatisticsSnapshot(
            total_word_count=total,
            today_word_count=today,
            weekly_word_count=weekly,
            monthly_word_count=monthly,
            yearly_word_count=yearly,
            daily_word_count_last_n_days=series,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
statistics_engine = StatisticsEngine(
    store=ledger_store,
    default_days=settings.stats_default_days,
    max_days=settings.stats_max_days,
)
