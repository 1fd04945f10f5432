"""
One-shot cancellable timers.

Each Timer runs its callback once on a daemon threading.Timer thread.
A timer moves ARMED -> FIRED or ARMED -> CANCELLED and never back; a new
Timer must be created to schedule again.

Cancelling before the firing instant guarantees the callback never runs.
Cancelling a timer that already fired is a no-op.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Sequence

logger = logging.getLogger("timers")


class TimerState(Enum):
    ARMED = "armed"
    FIRED = "fired"
    CANCELLED = "cancelled"


class Timer:
    """A single scheduled future callback."""

    def __init__(
        self,
        delay: float,
        callback: Callable,
        args: Sequence = (),
        name: Optional[str] = None,
    ):
        self.delay = delay
        self.name = name or getattr(callback, "__name__", "timer")
        self._callback = callback
        self._args = tuple(args)
        self._lock = threading.Lock()
        self._state = TimerState.ARMED
        self._thread = threading.Timer(delay, self._fire)
        self._thread.daemon = True
        self._thread.name = f"timer-{self.name}"

    @property
    def state(self) -> TimerState:
        with self._lock:
            return self._state

    @property
    def armed(self) -> bool:
        return self.state is TimerState.ARMED

    def start(self):
        self._thread.start()

    def cancel(self) -> bool:
        """Stop the timer. Returns True if it was still armed."""
        with self._lock:
            if self._state is not TimerState.ARMED:
                return False
            self._state = TimerState.CANCELLED
        self._thread.cancel()
        return True

    def _fire(self):
        with self._lock:
            if self._state is not TimerState.ARMED:
                return
            self._state = TimerState.FIRED
        try:
            self._callback(*self._args)
        except Exception as e:
            logger.error(f"Timer {self.name} callback failed: {type(e).__name__}: {e}")

    def __repr__(self):
        return f"<Timer {self.name} {self.state.value} delay={self.delay:.1f}s>"


def start_timer(delay: float, callback: Callable, args: Sequence = (), name: Optional[str] = None) -> Timer:
    """Create and arm a Timer. Default timer factory for the scheduler."""
    timer = Timer(delay, callback, args, name=name)
    timer.start()
    return timer
