"""
Data models shared by the scheduler and its collaborators.

Configuration:
    REMINDER_WEEKLY_DAY           - Default weekly digest weekday (default: "Sunday")
    REMINDER_DEFAULT_LEAD_MINUTES - Fallback reminder lead time (default: 15)
"""

import os
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Optional

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

WEEKLY_DIGEST_DAY = os.getenv("REMINDER_WEEKLY_DAY", "Sunday")
DEFAULT_LEAD_MINUTES = int(os.getenv("REMINDER_DEFAULT_LEAD_MINUTES", "15"))


def parse_time_of_day(value: str) -> time:
    """Parse "HH:MM" (24-hour) into a time. Raises ValueError if malformed."""
    hours, _, minutes = str(value).strip().partition(":")
    return time(int(hours), int(minutes or 0))


def parse_weekday(name: str) -> int:
    """ISO weekday number (1=Monday, 7=Sunday) for an English day name."""
    normalized = str(name).strip().capitalize()
    for index, day_name in enumerate(DAY_NAMES):
        if day_name == normalized or day_name[:3] == normalized:
            return index + 1
    raise ValueError(f"Unknown weekday: {name!r}")


@dataclass
class UserConfig:
    identity: Any  # chat id in practice
    daily_time: time
    weekly_time: time
    calendar_url: Optional[str] = None
    reminder_offset: Optional[str] = None
    weekly_day: Optional[str] = None

    @property
    def lead_minutes(self) -> int:
        """Reminder lead time; falls back to the default when unset or invalid."""
        try:
            minutes = int(str(self.reminder_offset).strip())
        except (TypeError, ValueError):
            return DEFAULT_LEAD_MINUTES
        if minutes < 0:
            return DEFAULT_LEAD_MINUTES
        return minutes

    @property
    def weekly_weekday(self) -> int:
        return parse_weekday(self.weekly_day or WEEKLY_DIGEST_DAY)

    @property
    def has_calendar(self) -> bool:
        return bool(self.calendar_url and self.calendar_url.strip())


@dataclass
class Lecture:
    title: str
    location: str
    start: datetime
    end: Optional[datetime] = None
