"""
Clock and calendar helpers shared by time multipliers, zone fee schedules
and event windows.
"""

from datetime import datetime, time, timezone, timedelta
from typing import Optional

from ride_pricing.app.services.geography import to_zone


def parse_clock(value: str) -> time:
    """Parse "HH:MM"."""
    return datetime.strptime(value, "%H:%M").time()


def clock_window_contains(start: str, end: str, moment: time) -> bool:
    """
    Whether a daily window contains the clock time.

    Bounds are inclusive. A window whose start is after its end wraps
    midnight (22:00-04:00 covers 23:30 and 02:00).
    """
    start_t = parse_clock(start)
    end_t = parse_clock(end)
    # minute resolution
    t = time(moment.hour, moment.minute)

    if start_t <= end_t:
        return start_t <= t <= end_t
    return t >= start_t or t <= end_t


def day_of_week(moment: datetime) -> int:
    """0=Sunday .. 6=Saturday."""
    return moment.isoweekday() % 7


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def to_local(moment: datetime, tz_name: Optional[str]) -> datetime:
    """Convert to the location's wall clock; no timezone keeps UTC."""
    utc_moment = as_utc(moment)
    if not tz_name:
        return utc_moment
    return utc_moment.astimezone(to_zone(tz_name))


def buffered_window_contains(
    starts_at: datetime,
    ends_at: datetime,
    pre_minutes: int,
    post_minutes: int,
    moment: datetime
) -> bool:
    """Whether moment falls in [starts_at - pre, ends_at + post]."""
    window_start = as_utc(starts_at) - timedelta(minutes=pre_minutes or 0)
    window_end = as_utc(ends_at) + timedelta(minutes=post_minutes or 0)
    return window_start <= as_utc(moment) <= window_end
