"""
Digests - Daily and weekly timetable messages, plus lecture reminder text.

Daily digest: today's lectures for one user.
Weekly digest: Monday-Friday of the teaching week, grouped by day.

Both read the user directory and calendar but never touch scheduler state.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Any, Callable, List

from lecture_reminders.calendar_source import CalendarError, CalendarSource
from lecture_reminders.models import DAY_NAMES, Lecture
from lecture_reminders.notify_channels import Notifier
from lecture_reminders.timekeeping import LOCAL_TZ, now_local, week_window
from lecture_reminders.users import UserDirectory, UserDirectoryError

logger = logging.getLogger("digests")

SET_CALENDAR_PROMPT = "Please set your calendar link using /set_calendar"
NO_LECTURES_TODAY = "No lectures today."
NO_LECTURES_THIS_WEEK = "No lectures this week."

_COURSE_CODE_SUFFIX = re.compile(r"\s*[\[(][^\])]*[\])]\s*$")


def clean_title(title: str) -> str:
    """Collapse whitespace and drop a trailing [..] or (..) course code."""
    title = " ".join(str(title).split())
    cleaned = _COURSE_CODE_SUFFIX.sub("", title)
    return cleaned or title


def format_lecture(lecture: Lecture) -> str:
    start = lecture.start.astimezone(LOCAL_TZ).strftime("%H:%M")
    if lecture.end is not None:
        start += "-" + lecture.end.astimezone(LOCAL_TZ).strftime("%H:%M")
    line = f"{start} *{clean_title(lecture.title)}*"
    if lecture.location:
        line += f"\n📍 {lecture.location}"
    return line


def format_lectures(lectures: List[Lecture]) -> str:
    return "\n\n".join(format_lecture(lec) for lec in lectures) + "\n"


def format_reminder(lecture: Lecture, lead_minutes: int) -> str:
    return f"⏰ *{clean_title(lecture.title)}* in {lead_minutes} minutes at {lecture.location}"


class DigestSender:
    """Builds and delivers digest messages for one user at a time."""

    def __init__(
        self,
        users: UserDirectory,
        calendar: CalendarSource,
        notifier: Notifier,
        clock: Callable[[], datetime] = now_local,
    ):
        self.users = users
        self.calendar = calendar
        self.notifier = notifier
        self.clock = clock

    def deliver(self, identity: Any, text: str) -> bool:
        """Send through the notifier; failures are logged, never raised."""
        try:
            return bool(self.notifier.send_message(identity, text))
        except Exception as e:
            logger.error(f"Error sending message to {identity}: {e}")
            return False

    def _calendar_url(self, identity: Any):
        try:
            user = self.users.get_user(identity)
        except UserDirectoryError as e:
            logger.warning(f"Could not read user {identity}: {e}")
            return None
        if user is None or not user.has_calendar:
            return None
        return user.calendar_url

    def send_daily_digest(self, identity: Any) -> bool:
        calendar_url = self._calendar_url(identity)
        if calendar_url is None:
            return self.deliver(identity, SET_CALENDAR_PROMPT)

        try:
            cal = self.calendar.fetch_calendar(calendar_url)
        except CalendarError as e:
            return self.deliver(identity, f"Error fetching calendar: {e}")

        day = self.clock().astimezone(LOCAL_TZ)
        try:
            lectures = self.calendar.get_lectures(cal, day)
        except CalendarError as e:
            return self.deliver(identity, f"Error processing calendar: {e}")

        if not lectures:
            return self.deliver(identity, NO_LECTURES_TODAY)

        message = f"*{day.strftime('%a, %d %b')}:*\n\n" + format_lectures(lectures)
        logger.info(f"Daily digest for {identity}: {len(lectures)} lectures")
        return self.deliver(identity, message)

    def send_weekly_digest(self, identity: Any) -> bool:
        calendar_url = self._calendar_url(identity)
        if calendar_url is None:
            return self.deliver(identity, SET_CALENDAR_PROMPT)

        try:
            cal = self.calendar.fetch_calendar(calendar_url)
        except CalendarError as e:
            return self.deliver(identity, f"Error fetching calendar: {e}")

        week_start, week_end = week_window(self.clock())
        try:
            lectures_by_day = self.calendar.get_lectures_in_range(cal, week_start, week_end)
        except CalendarError as e:
            return self.deliver(identity, f"Error processing calendar: {e}")

        if not any(lectures_by_day.values()):
            return self.deliver(identity, NO_LECTURES_THIS_WEEK)

        message = f"*{week_start.strftime('%a, %d %b')} - {week_end.strftime('%a, %d %b')}:*\n\n"
        for offset in range(5):
            day_name = DAY_NAMES[(week_start + timedelta(days=offset)).weekday()]
            lectures = lectures_by_day.get(day_name)
            if lectures:
                message += f"\n*{day_name}*\n" + format_lectures(lectures)

        logger.info(f"Weekly digest for {identity}: {sum(len(v) for v in lectures_by_day.values())} lectures")
        return self.deliver(identity, message)
