"""
Lecture Reminders daemon - schedules every user and waits for shutdown.

Configuration (environment variables):
    REMINDER_USERS_FILE  - YAML user file (default: ./users.yaml)
    REMINDER_LOG_DIR     - Directory for log files (default: ./logs)
    TELEGRAM_BOT_TOKEN   - Bot token; notifications go to the console if unset
"""

import argparse
import logging
import os
import signal
import sys
import threading
from pathlib import Path

from lecture_reminders import __version__
from lecture_reminders.calendar_source import load_calendar_source
from lecture_reminders.notify_channels import default_notifier
from lecture_reminders.scheduler import ReminderScheduler
from lecture_reminders.timekeeping import LOCAL_TZ, next_daily_time, next_weekly_time, now_local
from lecture_reminders.users import YamlUserDirectory

USERS_FILE = Path(os.getenv("REMINDER_USERS_FILE", "users.yaml"))
LOG_DIR = Path(os.getenv("REMINDER_LOG_DIR", "logs"))

logger = logging.getLogger("daemon")


def setup_logging(verbose: bool = False) -> Path:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    log_file = LOG_DIR / "reminders.log"
    handlers = [logging.FileHandler(log_file, mode="a")]
    if verbose:
        handlers.append(logging.StreamHandler())
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )
    return log_file


def build_scheduler(users_file: Path) -> ReminderScheduler:
    users = YamlUserDirectory(users_file)
    return ReminderScheduler(users, load_calendar_source(), default_notifier())


def list_schedule(scheduler: ReminderScheduler):
    """Print each user's next digest instants."""
    now = now_local()
    for user in scheduler.users.get_all_users():
        daily = next_daily_time(user.daily_time, now)
        weekly = next_weekly_time(user.weekly_time, user.weekly_weekday, now)
        calendar = "calendar set" if user.has_calendar else "no calendar"
        print(
            f"{user.identity}: daily {daily:%a %d %b %H:%M}, weekly {weekly:%a %d %b %H:%M}, "
            f"lead {user.lead_minutes} min, {calendar}"
        )


def run(scheduler: ReminderScheduler, log_file: Path, users_file: Path = USERS_FILE):
    """Schedule everyone, then block until SIGINT/SIGTERM."""
    stop_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info(f"Received signal {signum}")
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    logger.info("=" * 60)
    logger.info(f"LECTURE REMINDERS {__version__} STARTING")
    logger.info("=" * 60)
    logger.info(f"Timezone: {LOCAL_TZ.key}")
    logger.info(f"Users file: {users_file}")
    logger.info(f"Log file: {log_file}")
    logger.info("=" * 60)

    try:
        scheduler.schedule_all()
        logger.info(f"Scheduled users: {len(scheduler.scheduled_users())}")
        while not stop_event.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        scheduler.stop_all()
        logger.info("Scheduler stopped.")


def parse_identity(value: str):
    """Chat ids are integers; anything else is passed through as text."""
    try:
        return int(value)
    except ValueError:
        return value


def main(argv=None) -> int:
    """Entry point with CLI flags."""
    parser = argparse.ArgumentParser(description="Lecture Reminders - timetable notification daemon")
    parser.add_argument("--users", type=Path, default=USERS_FILE, help="YAML user file")
    parser.add_argument("--daily-now", metavar="ID", help="Send one user's daily digest now and exit")
    parser.add_argument("--weekly-now", metavar="ID", help="Send one user's weekly digest now and exit")
    parser.add_argument("--list", action="store_true", help="Show each user's next digest times")
    parser.add_argument("--verbose", action="store_true", help="Also log to stderr")
    args = parser.parse_args(argv)

    log_file = setup_logging(args.verbose)
    scheduler = build_scheduler(args.users)

    if args.daily_now:
        ok = scheduler.digests.send_daily_digest(parse_identity(args.daily_now))
        return 0 if ok else 1

    if args.weekly_now:
        ok = scheduler.digests.send_weekly_digest(parse_identity(args.weekly_now))
        return 0 if ok else 1

    if args.list:
        list_schedule(scheduler)
        return 0

    run(scheduler, log_file, args.users)
    return 0


if __name__ == "__main__":
    sys.exit(main())
