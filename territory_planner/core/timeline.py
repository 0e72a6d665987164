"""
Season day counting.

Day 1 begins at the season start and each day lasts 24 hours, so the day
rolls over at the same UTC time as the season start (02:00 UTC).
"""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

SEASON_START = datetime(2025, 11, 17, 2, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def _utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def current_day(now: Optional[datetime] = None, season_start: datetime = SEASON_START) -> int:
    """Day number of ``now`` within the season (day 1 at the season start)."""
    now = _utc(now or datetime.now(timezone.utc))
    elapsed = now - _utc(season_start)
    return math.floor(elapsed / DAY) + 1


def time_until_next_day(now: Optional[datetime] = None, season_start: datetime = SEASON_START) -> timedelta:
    """Time left before the next day rollover."""
    now = _utc(now or datetime.now(timezone.utc))
    next_day_start = _utc(season_start) + current_day(now, season_start) * DAY
    return next_day_start - now


def format_time_remaining(remaining: Union[timedelta, float]) -> str:
    """Format a duration (or seconds) as HH:MM:SS."""
    seconds = remaining.total_seconds() if isinstance(remaining, timedelta) else float(remaining)
    if seconds <= 0:
        return "00:00:00"

    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
