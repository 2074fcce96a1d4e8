"""
Tadoku Backend — Statistics & Quota Schemas
============================================

What:  Responses of GET /api/v1/users/me/stats and
       GET /api/v1/users/me/generation-status.
"""

from typing import Dict

from pydantic import BaseModel, Field


class StatsResponse(BaseModel):
    """
    Word counts over the reference-timezone calendar windows.

    daily_word_count_last_n_days maps ISO dates (YYYY-MM-DD) to totals,
    oldest first, with every day present (zero when nothing was read).
    """

    total_word_count: int = Field(description="All words ever read")
    today_word_count: int = Field(description="Words read today")
    weekly_word_count: int = Field(description="Words read this week (Monday start)")
    monthly_word_count: int = Field(description="Words read this calendar month")
    yearly_word_count: int = Field(description="Words read this calendar year")
    daily_word_count_last_n_days: Dict[str, int] = Field(
        description="Per-day totals for the last N days ending today"
    )

    model_config = {"from_attributes": True}


class GenerationStatusResponse(BaseModel):
    """How many generations the user has left today."""

    current_count: int = Field(description="Generations already used today")
    limit: int = Field(description="Daily generation limit")
    remaining: int = Field(description="Generations left today (never negative)")

    model_config = {"from_attributes": True}
