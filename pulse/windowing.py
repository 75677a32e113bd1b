from __future__ import annotations
from datetime import datetime, timedelta, timezone
from typing import Literal, get_args

TimeRange = Literal["today", "week", "month"]
TIME_RANGES = get_args(TimeRange)

# 0 = Sunday
WEEK_STARTS_ON = 0

def start_of_day(ts: datetime) -> datetime:
    start = ts.replace(hour=0, minute=0, second=0, microsecond=0)
    if start.tzinfo is None:
        return start
    # midnight can be skipped by a DST change; the UTC round trip lands on the first real instant of the day
    return start.astimezone(timezone.utc).astimezone(start.tzinfo)

def start_of_week(ts: datetime, week_starts_on: int = WEEK_STARTS_ON) -> datetime:
    # datetime.weekday() counts from Monday = 0
    day_index = (ts.weekday() + 1) % 7
    back = (day_index - week_starts_on) % 7
    return start_of_day(ts - timedelta(days=back))

def start_of_month(ts: datetime) -> datetime:
    return start_of_day(ts.replace(day=1))

def resolve_window_start(time_range: TimeRange, now: datetime) -> datetime:
    """Inclusive lower bound of the window that ends at ``now``, in ``now``'s timezone."""
    if time_range == "today":
        return start_of_day(now)
    if time_range == "week":
        return start_of_week(now)
    if time_range == "month":
        return start_of_month(now)
    raise ValueError(f"unknown time range: {time_range!r}")
