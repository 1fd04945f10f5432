"""
Notification Channels - Message delivery to individual users.

Supports:
- Telegram (via bot API, one chat per user)
- Console (fallback, always available)

Delivery failures are logged and reported as False, never raised and
never retried.

Credentials are loaded from environment variables:
    export TELEGRAM_BOT_TOKEN="your-bot-token"
"""

import json
import logging
import os
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

logger = logging.getLogger("notify_channels")

TELEGRAM_BOT_TOKEN = os.getenv("TELEGRAM_BOT_TOKEN", "")
TELEGRAM_API_URL = "https://api.telegram.org"


class Notifier(ABC):
    """Delivers a text message to one user."""

    @abstractmethod
    def send_message(self, identity: Any, text: str) -> bool:
        """Send text to the user. Returns True on success, never raises."""


class TelegramNotifier(Notifier):
    """Send messages through the Telegram Bot API."""

    def __init__(self, token: str = None, timeout: float = 10):
        self.token = token if token is not None else TELEGRAM_BOT_TOKEN
        self.timeout = timeout

    def send_message(self, identity: Any, text: str) -> bool:
        """Send a message to a chat.

        Tries Markdown formatting first, falls back to plain text.
        """
        if not self.token:
            logger.warning("Telegram not configured (set TELEGRAM_BOT_TOKEN)")
            return False

        url = f"{TELEGRAM_API_URL}/bot{self.token}/sendMessage"

        # Try Markdown first, fall back to plain text if special chars cause 400
        for parse_mode in ("Markdown", None):
            try:
                params = {
                    "chat_id": identity,
                    "text": text,
                }
                if parse_mode:
                    params["parse_mode"] = parse_mode

                data = urllib.parse.urlencode(params).encode()
                req = urllib.request.Request(url, data=data, method="POST")
                with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                    result = json.loads(resp.read())
                    if result.get("ok"):
                        logger.info(f"Telegram sent to {identity}: {text[:50]}...")
                        return True
                    logger.error(f"Telegram API error for {identity}: {result}")
                    return False
            except urllib.error.HTTPError as e:
                if e.code == 400 and parse_mode:
                    logger.debug("Markdown parse failed, retrying as plain text")
                    continue
                logger.error(f"Error sending message to {identity}: {e}")
                return False
            except Exception as e:
                logger.error(f"Error sending message to {identity}: {e}")
                return False
        return False


class ConsoleNotifier(Notifier):
    """Print notifications to stdout."""

    def send_message(self, identity: Any, text: str) -> bool:
        timestamp = datetime.now().strftime("%H:%M:%S")
        print(f"[{timestamp}] NOTIFICATION for {identity}: {text}")
        return True


def default_notifier() -> Notifier:
    """Telegram when a bot token is set, console otherwise."""
    if TELEGRAM_BOT_TOKEN:
        return TelegramNotifier()
    logger.warning("TELEGRAM_BOT_TOKEN not set - notifications go to the console")
    return ConsoleNotifier()
