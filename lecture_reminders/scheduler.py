"""
Reminder Scheduler - Per-user lecture reminder timers.

For every registered user the scheduler keeps one UserTimers set:
- Daily digest timer
- Weekly digest timer
- Midnight replanner (re-reads today's lectures just after midnight)
- One reminder timer per upcoming lecture

Every recurrence is a chained one-shot: a fired timer computes its next
instant from "now" and the user's configuration, then arms a fresh timer.

The identity -> UserTimers mapping is guarded by a single lock. The lock is
never held across user lookups, calendar fetches or message delivery, so a
slow network call for one user cannot stall scheduling for anyone else.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from lecture_reminders.calendar_source import CalendarError, CalendarSource
from lecture_reminders.digests import DigestSender, format_reminder
from lecture_reminders.models import Lecture, UserConfig
from lecture_reminders.notify_channels import Notifier
from lecture_reminders.timekeeping import (
    next_daily_time,
    next_midnight,
    next_weekly_time,
    now_local,
    seconds_until,
)
from lecture_reminders.timers import Timer, start_timer
from lecture_reminders.users import UserDirectory, UserDirectoryError

logger = logging.getLogger("scheduler")


@dataclass
class UserTimers:
    """All live timers owned by one user."""

    identity: Any
    daily: Optional[Timer] = None
    weekly: Optional[Timer] = None
    replanner: Optional[Timer] = None
    lectures: List[Timer] = field(default_factory=list)
    replan_generation: int = 0
    cancelled: bool = False

    def all_timers(self) -> List[Timer]:
        timers = [t for t in (self.daily, self.weekly, self.replanner) if t is not None]
        return timers + list(self.lectures)

    def cancel(self):
        """Stop every timer in the set. Already-fired timers are left alone."""
        self.cancelled = True
        for timer in self.all_timers():
            timer.cancel()
        self.lectures = []


class ReminderScheduler:
    """Owns every user's timer set and is the only code that mutates it."""

    def __init__(
        self,
        users: UserDirectory,
        calendar: CalendarSource,
        notifier: Notifier,
        clock: Callable[[], datetime] = now_local,
        timer_factory: Callable[..., Timer] = start_timer,
    ):
        self.users = users
        self.calendar = calendar
        self.clock = clock
        self.digests = DigestSender(users, calendar, notifier, clock=clock)
        self._start_timer = timer_factory
        self._lock = threading.RLock()
        self._timers: Dict[Any, UserTimers] = {}

    # ---- Public operations ----

    def schedule_all(self):
        """Schedule every registered user. One bad record never stops the rest."""
        try:
            users = self.users.get_all_users()
        except UserDirectoryError as e:
            logger.error(f"Could not list users, nothing scheduled: {e}")
            return

        logger.info(f"Scheduling {len(users)} users")
        for user in users:
            try:
                self.schedule_user(user.identity)
            except Exception as e:
                logger.error(f"Failed to schedule user {user.identity}: {type(e).__name__}: {e}")

    def schedule_user(self, identity: Any):
        """(Re)arm all timers for a user. Silently does nothing for unknown users."""
        self._schedule(identity)

    def cancel_user(self, identity: Any) -> bool:
        """Cancel and forget a user's timers. Returns False if none were scheduled."""
        with self._lock:
            timers = self._timers.pop(identity, None)
            if timers is None:
                return False
            timers.cancel()
        logger.info(f"Cancelled timers for {identity}")
        return True

    def stop_all(self):
        """Cancel every user's timers. Used at shutdown."""
        with self._lock:
            identities = list(self._timers)
            for identity in identities:
                self.cancel_user(identity)
        logger.info(f"All timers stopped ({len(identities)} users)")

    def get_timers(self, identity: Any) -> Optional[UserTimers]:
        with self._lock:
            return self._timers.get(identity)

    def scheduled_users(self) -> List[Any]:
        with self._lock:
            return list(self._timers)

    # ---- Helpers ----

    def _now(self, not_before: Optional[datetime] = None) -> datetime:
        now = self.clock()
        if not_before is not None and seconds_until(not_before, now) > 0:
            return not_before
        return now

    def _get_user(self, identity: Any) -> Optional[UserConfig]:
        try:
            return self.users.get_user(identity)
        except UserDirectoryError as e:
            logger.warning(f"Could not read user {identity}: {e}")
            return None

    def _is_current(self, timers: UserTimers) -> bool:
        with self._lock:
            return self._timers.get(timers.identity) is timers

    def _arm(self, at: datetime, now: datetime, callback: Callable, *args, name: str) -> Timer:
        return self._start_timer(seconds_until(at, now), callback, args, name=name)

    # ---- Daily / weekly digests ----

    def _schedule(
        self,
        identity: Any,
        not_before: Optional[datetime] = None,
        replacing: Optional[UserTimers] = None,
    ) -> Optional[UserTimers]:
        user = self._get_user(identity)
        if user is None:
            logger.debug(f"User {identity} not found, nothing scheduled")
            return None

        now = self._now(not_before)
        try:
            daily_at = next_daily_time(user.daily_time, now)
            weekly_at = next_weekly_time(user.weekly_time, user.weekly_weekday, now)
        except ValueError as e:
            logger.warning(f"Invalid schedule for user {identity}: {e}")
            return None
        midnight_at = next_midnight(now)

        with self._lock:
            old = self._timers.get(identity)
            if replacing is not None and old is not replacing:
                # Rescheduled or cancelled while the digest was being sent
                return None
            if old is not None:
                old.cancel()
                del self._timers[identity]

            timers = UserTimers(identity)
            timers.daily = self._arm(daily_at, now, self._on_daily, timers, daily_at, name=f"daily-{identity}")
            timers.weekly = self._arm(weekly_at, now, self._on_weekly, timers, weekly_at, name=f"weekly-{identity}")
            timers.replanner = self._arm(
                midnight_at, now, self._on_midnight, timers, midnight_at, name=f"replan-{identity}"
            )
            self._timers[identity] = timers

        logger.info(
            f"Scheduled {identity}: daily {daily_at:%a %d %b %H:%M}, "
            f"weekly {weekly_at:%a %d %b %H:%M}"
        )
        self._replan_lectures(timers, not_before=not_before)
        return timers

    def _on_daily(self, timers: UserTimers, fire_at: datetime):
        try:
            self.digests.send_daily_digest(timers.identity)
        except Exception as e:
            logger.error(f"Daily digest for {timers.identity} failed: {type(e).__name__}: {e}")
        self._schedule(timers.identity, not_before=fire_at, replacing=timers)

    def _on_weekly(self, timers: UserTimers, fire_at: datetime):
        try:
            self.digests.send_weekly_digest(timers.identity)
        except Exception as e:
            logger.error(f"Weekly digest for {timers.identity} failed: {type(e).__name__}: {e}")
        self._schedule(timers.identity, not_before=fire_at, replacing=timers)

    # ---- Lecture reminders ----

    def _on_midnight(self, timers: UserTimers, fire_at: datetime):
        try:
            self._replan_lectures(timers, not_before=fire_at)
        except Exception as e:
            logger.error(f"Midnight replan for {timers.identity} failed: {type(e).__name__}: {e}")

        now = self._now(fire_at)
        next_at = next_midnight(now)
        with self._lock:
            if self._timers.get(timers.identity) is not timers:
                return
            timers.replanner = self._arm(
                next_at, now, self._on_midnight, timers, next_at, name=f"replan-{timers.identity}"
            )

    def _replan_lectures(self, timers: UserTimers, not_before: Optional[datetime] = None) -> int:
        """Replace the user's lecture reminders with fresh ones for today.

        Returns the number of reminders armed.
        """
        identity = timers.identity
        with self._lock:
            if self._timers.get(identity) is not timers:
                return 0
            for timer in timers.lectures:
                timer.cancel()
            timers.lectures = []
            timers.replan_generation += 1
            generation = timers.replan_generation

        user = self._get_user(identity)
        if user is None or not user.has_calendar:
            return 0

        today = self._now(not_before)
        try:
            cal = self.calendar.fetch_calendar(user.calendar_url)
            lectures = self.calendar.get_lectures(cal, today)
        except CalendarError as e:
            logger.info(f"Lecture replan for {identity} skipped: {e}")
            return 0
        if not lectures:
            return 0

        lead = user.lead_minutes
        now = self._now(not_before)
        with self._lock:
            if self._timers.get(identity) is not timers or timers.replan_generation != generation:
                logger.debug(f"Discarding stale lecture replan for {identity}")
                return 0
            for lecture in lectures:
                remind_at = lecture.start - timedelta(minutes=lead)
                if seconds_until(remind_at, now) <= 0:
                    continue
                timers.lectures.append(
                    self._arm(remind_at, now, self._on_lecture, identity, lecture, lead,
                              name=f"lecture-{identity}")
                )
            armed = len(timers.lectures)

        logger.info(f"Armed {armed} of {len(lectures)} lecture reminders for {identity}")
        return armed

    def _on_lecture(self, identity: Any, lecture: Lecture, lead_minutes: int):
        self.digests.deliver(identity, format_reminder(lecture, lead_minutes))
