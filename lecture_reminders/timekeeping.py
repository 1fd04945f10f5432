"""
Timekeeping - Wall-clock arithmetic for the reminder scheduler.

Every function here is a pure function of "now" and configuration, so each
recurrence is computed independently of the previous one.

All instants are timezone-aware in LOCAL_TZ. Timers fire at the wall-clock
instant; the delay until that instant is measured in real elapsed seconds
(see seconds_until), so daylight-saving shifts never skew a timer by an hour.

Configuration:
    REMINDER_TIMEZONE - Authoritative timezone (default: "Europe/London")
"""

import os
from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple
from zoneinfo import ZoneInfo

LOCAL_TZ = ZoneInfo(os.getenv("REMINDER_TIMEZONE", "Europe/London"))

# Avoids date-boundary ambiguity exactly at 00:00:00
MIDNIGHT_REPLAN_TIME = time(0, 0, 1)


def now_local() -> datetime:
    """Current instant in the scheduling timezone."""
    return datetime.now(LOCAL_TZ)


def at_local(day: date, at: time) -> datetime:
    """Aware datetime for a wall-clock time on a given local date."""
    return datetime.combine(day, at.replace(tzinfo=None), tzinfo=LOCAL_TZ)


def seconds_until(target: datetime, now: datetime) -> float:
    """Real seconds from now until target, never negative.

    Aware datetimes sharing a tzinfo subtract as naive wall times, so both
    sides go through UTC first.
    """
    delta = target.astimezone(timezone.utc) - now.astimezone(timezone.utc)
    return max(0.0, delta.total_seconds())


def next_daily_time(at: time, now: datetime) -> datetime:
    """Next occurrence of a time of day; rolls to tomorrow if already passed."""
    now = now.astimezone(LOCAL_TZ)
    candidate = at_local(now.date(), at)
    if seconds_until(candidate, now) <= 0:
        candidate = at_local(now.date() + timedelta(days=1), at)
    return candidate


def next_weekly_time(at: time, weekday: int, now: datetime) -> datetime:
    """Next occurrence of a time of day on an ISO weekday (1=Monday, 7=Sunday)."""
    now = now.astimezone(LOCAL_TZ)
    days_ahead = (weekday - now.isoweekday()) % 7
    candidate = at_local(now.date() + timedelta(days=days_ahead), at)
    if seconds_until(candidate, now) <= 0:
        candidate = at_local(now.date() + timedelta(days=days_ahead + 7), at)
    return candidate


def next_midnight(now: datetime) -> datetime:
    """Next local midnight, plus one second."""
    now = now.astimezone(LOCAL_TZ)
    return at_local(now.date() + timedelta(days=1), MIDNIGHT_REPLAN_TIME)


def week_window(now: datetime) -> Tuple[datetime, datetime]:
    """Monday 00:00 through Friday 23:59:59 of the teaching week for now.

    Saturday and Sunday (ISO 6 and 7) roll forward to the next week.
    """
    now = now.astimezone(LOCAL_TZ)
    weekday = now.isoweekday()
    monday = now.date() - timedelta(days=weekday - 1)
    if weekday >= 6:
        monday += timedelta(days=7)
    friday = monday + timedelta(days=4)
    return at_local(monday, time(0, 0)), at_local(friday, time(23, 59, 59))
