"""
User Directory - Read access to each user's reminder preferences.

Two implementations:
- InMemoryUserDirectory: thread-safe dict the bot's command layer updates
  when a user changes a setting.
- YamlUserDirectory: loads users from a YAML file, e.g.

    users:
      - chat_id: 123456
        daily_time: "07:30"
        weekly_time: "18:00"
        weekly_day: Sunday        # optional
        calendar_url: webcal://example.ac.uk/timetable.ics
        reminder_offset: "10"     # minutes, optional
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from lecture_reminders.models import UserConfig, parse_time_of_day, parse_weekday

logger = logging.getLogger("users")


class UserDirectoryError(Exception):
    """Raised when the user store cannot be read."""


class UserDirectory(ABC):
    """Abstract base class for user preference stores."""

    @abstractmethod
    def get_user(self, identity: Any) -> Optional[UserConfig]:
        """Return the user's configuration, or None if not registered."""

    @abstractmethod
    def get_all_users(self) -> List[UserConfig]:
        """Return every registered user."""


class InMemoryUserDirectory(UserDirectory):
    """Thread-safe in-process user store."""

    def __init__(self, users: Optional[List[UserConfig]] = None):
        self._lock = threading.Lock()
        self._users: Dict[Any, UserConfig] = {u.identity: u for u in users or []}

    def get_user(self, identity: Any) -> Optional[UserConfig]:
        with self._lock:
            return self._users.get(identity)

    def get_all_users(self) -> List[UserConfig]:
        with self._lock:
            return list(self._users.values())

    def upsert(self, user: UserConfig):
        with self._lock:
            self._users[user.identity] = user

    def remove(self, identity: Any) -> bool:
        with self._lock:
            return self._users.pop(identity, None) is not None


def user_from_record(record: Dict[str, Any]) -> UserConfig:
    """Build a UserConfig from a mapping. Raises ValueError/KeyError if malformed."""
    user = UserConfig(
        identity=record["chat_id"],
        daily_time=parse_time_of_day(record["daily_time"]),
        weekly_time=parse_time_of_day(record["weekly_time"]),
        calendar_url=record.get("calendar_url") or None,
        reminder_offset=None if record.get("reminder_offset") is None else str(record["reminder_offset"]),
        weekly_day=record.get("weekly_day") or None,
    )
    if user.weekly_day:
        parse_weekday(user.weekly_day)
    return user


class YamlUserDirectory(UserDirectory):
    """User directory loaded from a YAML file. Call reload() after edits."""

    def __init__(self, path: Path):
        self._lock = threading.Lock()
        self._path = Path(path)
        self._users: Dict[Any, UserConfig] = {}
        self.reload()

    def reload(self):
        """Re-read the file. Malformed records are skipped with a warning."""
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            logger.warning(f"User file {self._path} not found, no users registered")
            data = {}
        except (yaml.YAMLError, IOError) as e:
            raise UserDirectoryError(f"Could not read {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise UserDirectoryError(f"{self._path}: expected a mapping with a 'users' list")

        users: Dict[Any, UserConfig] = {}
        for index, record in enumerate(data.get("users") or []):
            try:
                user = user_from_record(record)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed user record #{index} in {self._path}: {e}")
                continue
            users[user.identity] = user

        with self._lock:
            self._users = users
        logger.info(f"Loaded {len(users)} users from {self._path}")

    def get_user(self, identity: Any) -> Optional[UserConfig]:
        with self._lock:
            return self._users.get(identity)

    def get_all_users(self) -> List[UserConfig]:
        with self._lock:
            return list(self._users.values())
