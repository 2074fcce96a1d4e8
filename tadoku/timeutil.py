"""
Tadoku Backend — Reference Clock & Calendar Windows
====================================================

What:  Day-boundary and window arithmetic in one fixed reference timezone.
Who:   Used by the quota tracker (daily reset) and the statistics engine
       (today / week / month / year / last N days).
How:   All boundaries are computed on calendar dates first and only then
       localized to midnight with pytz, so a day that contains a DST
       transition is 23 or 25 hours long instead of drifting by an hour.
       Every window is half-open: [start, end).

Storage convention:
    The database stores UTC. `to_utc` is applied to every bound before it
    reaches a query, and `ensure_utc` to every timestamp read back (some
    drivers return naive datetimes for timezone-aware columns).
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import List, Optional, Tuple

import pytz

from tadoku.config import settings


@dataclass(frozen=True)
class TimeWindow:
    """Half-open time range [start, end) with tz-aware bounds."""

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


def get_reference_timezone(name: Optional[str] = None) -> tzinfo:
    """Returns the configured reference timezone (or `name` when given)."""
    return pytz.timezone(name or settings.reference_timezone)


def now_in(tz: Optional[tzinfo] = None) -> datetime:
    """Current instant expressed in the reference timezone."""
    tz = tz or get_reference_timezone()
    return datetime.now(pytz.utc).astimezone(tz)


def ensure_utc(moment: datetime) -> datetime:
    """Treats naive datetimes as UTC and converts aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=pytz.utc)
    return moment.astimezone(pytz.utc)


def to_utc(moment: datetime) -> datetime:
    """
    Converts an aware datetime to UTC.

    Raises:
        ValueError: for naive input. A naive `now` is a caller bug; guessing
        its zone would silently shift every boundary.
    """
    if moment.tzinfo is None:
        raise ValueError("naive datetime passed where an aware one is required")
    return moment.astimezone(pytz.utc)


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """Midnight at the start of `day` in `tz`."""
    naive = datetime.combine(day, time.min)
    if hasattr(tz, "localize"):
        return tz.localize(naive)
    return naive.replace(tzinfo=tz)


def local_date(moment: datetime, tz: tzinfo) -> date:
    """Calendar date of `moment` as seen in `tz`."""
    if moment.tzinfo is None:
        raise ValueError("naive datetime passed where an aware one is required")
    return moment.astimezone(tz).date()


def day_start(moment: datetime, tz: tzinfo) -> datetime:
    """Midnight of the calendar day containing `moment` in `tz`."""
    return local_midnight(local_date(moment, tz), tz)


def iso_weekday(moment: datetime, tz: tzinfo) -> int:
    """Monday = 1 … Sunday = 7."""
    # date.weekday() is Monday=0..Sunday=6; shifting by one gives the ISO
    # numbering in which Sunday is 7 rather than 0.
    return local_date(moment, tz).weekday() + 1


def _first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def day_window(day: date, tz: tzinfo) -> TimeWindow:
    return TimeWindow(local_midnight(day, tz), local_midnight(day + timedelta(days=1), tz))


def today_window(now: datetime, tz: tzinfo) -> TimeWindow:
    return day_window(local_date(now, tz), tz)


def week_window(now: datetime, tz: tzinfo) -> TimeWindow:
    """Monday-start week containing `now`."""
    today = local_date(now, tz)
    monday = today - timedelta(days=iso_weekday(now, tz) - 1)
    return TimeWindow(local_midnight(monday, tz), local_midnight(monday + timedelta(days=7), tz))


def month_window(now: datetime, tz: tzinfo) -> TimeWindow:
    today = local_date(now, tz)
    first = today.replace(day=1)
    return TimeWindow(local_midnight(first, tz), local_midnight(_first_of_next_month(first), tz))


def year_window(now: datetime, tz: tzinfo) -> TimeWindow:
    year = local_date(now, tz).year
    return TimeWindow(
        local_midnight(date(year, 1, 1), tz),
        local_midnight(date(year + 1, 1, 1), tz),
    )


def last_n_day_windows(now: datetime, tz: tzinfo, days: int) -> List[Tuple[date, TimeWindow]]:
    """
    The `days` calendar days ending today (inclusive), oldest first.

    Consecutive windows share their boundary, so together they tile
    [day_start(now) - (days-1) days, day_start(now) + 1 day) exactly.
    """
    if days <= 0:
        raise ValueError("days must be positive")
    today = local_date(now, tz)
    first = today - timedelta(days=days - 1)
    return [
        (first + timedelta(days=i), day_window(first + timedelta(days=i), tz))
        for i in range(days)
    ]
