"""
Pytest configuration and shared fixtures for lecture reminder tests.
"""

import sys
from datetime import datetime, time, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from lecture_reminders.calendar_source import InMemoryCalendarSource  # noqa: E402
from lecture_reminders.models import Lecture, UserConfig  # noqa: E402
from lecture_reminders.notify_channels import Notifier  # noqa: E402
from lecture_reminders.scheduler import ReminderScheduler  # noqa: E402
from lecture_reminders.timekeeping import LOCAL_TZ  # noqa: E402
from lecture_reminders.timers import TimerState  # noqa: E402
from lecture_reminders.users import InMemoryUserDirectory  # noqa: E402

FEED = "webcal://timetable.example.ac.uk/alice.ics"


def local(year, month, day, hour=0, minute=0, second=0):
    return datetime(year, month, day, hour, minute, second, tzinfo=LOCAL_TZ)


class FakeClock:
    """Settable replacement for now_local()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeTimer:
    """Timer double that only fires when the test says so."""

    def __init__(self, delay, callback, args=(), name=None):
        self.delay = delay
        self.callback = callback
        self.args = tuple(args)
        self.name = name
        self.state = TimerState.ARMED

    @property
    def armed(self):
        return self.state is TimerState.ARMED

    def cancel(self):
        if self.state is not TimerState.ARMED:
            return False
        self.state = TimerState.CANCELLED
        return True

    def fire(self):
        if self.state is not TimerState.ARMED:
            return
        self.state = TimerState.FIRED
        self.callback(*self.args)


class FakeTimerFactory:
    """Records every timer the scheduler creates."""

    def __init__(self):
        self.created = []

    def __call__(self, delay, callback, args=(), name=None):
        timer = FakeTimer(delay, callback, args, name=name)
        self.created.append(timer)
        return timer

    def armed(self):
        return [t for t in self.created if t.armed]


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def send_message(self, identity, text):
        self.sent.append((identity, text))
        return True

    def texts(self):
        return [text for _, text in self.sent]


def make_user(identity=1, calendar_url=FEED, daily="07:30", weekly="18:00", offset="15", weekly_day=None):
    hours, minutes = daily.split(":")
    w_hours, w_minutes = weekly.split(":")
    return UserConfig(
        identity=identity,
        daily_time=time(int(hours), int(minutes)),
        weekly_time=time(int(w_hours), int(w_minutes)),
        calendar_url=calendar_url,
        reminder_offset=offset,
        weekly_day=weekly_day,
    )


def make_lecture(title, start, minutes=60, location="Room 101"):
    return Lecture(title=title, location=location, start=start, end=start + timedelta(minutes=minutes))


@pytest.fixture
def clock():
    # Wednesday
    return FakeClock(local(2026, 10, 14, 10, 30))


@pytest.fixture
def timer_factory():
    return FakeTimerFactory()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def calendar():
    return InMemoryCalendarSource()


@pytest.fixture
def users():
    return InMemoryUserDirectory()


@pytest.fixture
def scheduler(users, calendar, notifier, clock, timer_factory):
    return ReminderScheduler(users, calendar, notifier, clock=clock, timer_factory=timer_factory)
