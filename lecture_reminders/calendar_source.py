"""
Calendar Source - Pluggable access to a user's lecture timetable.

The scheduler never parses calendar feeds itself. It talks to a
CalendarSource, which turns a feed identifier (e.g. a webcal URL) into
Lecture records.

A concrete source is supplied by a calendar_client module providing:
    - get_calendar_source() -> CalendarSource

Configuration:
    REMINDER_CALENDAR_CLIENT - Module providing the source (default: "calendar_client")
"""

import importlib
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from lecture_reminders.models import DAY_NAMES, Lecture
from lecture_reminders.timekeeping import LOCAL_TZ

logger = logging.getLogger("calendar_source")

CALENDAR_CLIENT_MODULE = os.getenv("REMINDER_CALENDAR_CLIENT", "calendar_client")


class CalendarError(Exception):
    """Raised when a feed cannot be fetched or its events cannot be read."""


class CalendarSource(ABC):
    """Abstract base class for calendar providers."""

    @abstractmethod
    def fetch_calendar(self, feed_id: str) -> Any:
        """Fetch a feed and return an opaque calendar handle.

        Raises:
            CalendarError: on network or parse failure
        """

    @abstractmethod
    def get_lectures(self, calendar: Any, day: datetime) -> List[Lecture]:
        """Lectures on the local date of `day`, ordered by start time."""

    @abstractmethod
    def get_lectures_in_range(self, calendar: Any, start: datetime, end: datetime) -> Dict[str, List[Lecture]]:
        """Lectures from start to end inclusive, keyed by English day name.

        Days without lectures are absent from the result.
        """


def group_by_day(lectures: List[Lecture]) -> Dict[str, List[Lecture]]:
    """Group lectures under their local day name, each group sorted by start."""
    days: Dict[str, List[Lecture]] = {}
    for lecture in sorted(lectures, key=lambda lec: lec.start):
        day_name = DAY_NAMES[lecture.start.astimezone(LOCAL_TZ).weekday()]
        days.setdefault(day_name, []).append(lecture)
    return days


class InMemoryCalendarSource(CalendarSource):
    """Calendar source backed by lecture lists held in memory.

    Useful for development and for wiring the bot without a live feed.
    """

    def __init__(self, feeds: Optional[Dict[str, List[Lecture]]] = None):
        self._lock = threading.Lock()
        self._feeds: Dict[str, List[Lecture]] = dict(feeds or {})

    def set_feed(self, feed_id: str, lectures: List[Lecture]):
        with self._lock:
            self._feeds[feed_id] = list(lectures)

    def fetch_calendar(self, feed_id: str) -> List[Lecture]:
        with self._lock:
            if feed_id not in self._feeds:
                raise CalendarError(f"unknown calendar feed: {feed_id}")
            return list(self._feeds[feed_id])

    def get_lectures(self, calendar: List[Lecture], day: datetime) -> List[Lecture]:
        target: date = day.astimezone(LOCAL_TZ).date()
        return sorted(
            (lec for lec in calendar if lec.start.astimezone(LOCAL_TZ).date() == target),
            key=lambda lec: lec.start,
        )

    def get_lectures_in_range(self, calendar: List[Lecture], start: datetime, end: datetime) -> Dict[str, List[Lecture]]:
        first = start.astimezone(LOCAL_TZ).date()
        last = end.astimezone(LOCAL_TZ).date() + timedelta(days=1)
        in_range = [
            lec for lec in calendar
            if first <= lec.start.astimezone(LOCAL_TZ).date() < last
        ]
        return group_by_day(in_range)


class NotConfiguredCalendarSource(CalendarSource):
    """Stand-in used when no calendar_client module is installed."""

    def fetch_calendar(self, feed_id: str) -> Any:
        raise CalendarError("calendar integration not configured")

    def get_lectures(self, calendar: Any, day: datetime) -> List[Lecture]:
        raise CalendarError("calendar integration not configured")

    def get_lectures_in_range(self, calendar: Any, start: datetime, end: datetime) -> Dict[str, List[Lecture]]:
        raise CalendarError("calendar integration not configured")


def load_calendar_source(module_name: Optional[str] = None) -> CalendarSource:
    """Import the configured calendar client and return its source."""
    module_name = module_name or CALENDAR_CLIENT_MODULE
    try:
        module = importlib.import_module(module_name)
    except ImportError:
        logger.warning(f"{module_name} module not available - lecture reminders disabled")
        return NotConfiguredCalendarSource()
    source = module.get_calendar_source()
    logger.info(f"Calendar source loaded from {module_name}: {type(source).__name__}")
    return source
