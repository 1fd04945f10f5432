"""Tests for the one-shot Timer primitive (real threads, short delays)."""

import logging
import threading
import time

from lecture_reminders.timers import Timer, TimerState, start_timer


def test_fires_once_with_args():
    fired = threading.Event()
    calls = []

    def callback(a, b):
        calls.append((a, b))
        fired.set()

    timer = start_timer(0.05, callback, ("x", 2), name="probe")

    assert fired.wait(timeout=5)
    assert calls == [("x", 2)]
    assert timer.state is TimerState.FIRED
    assert not timer.armed


def test_cancel_before_fire_prevents_callback():
    calls = []
    timer = start_timer(0.2, calls.append, ("late",))

    assert timer.cancel() is True
    time.sleep(0.4)

    assert calls == []
    assert timer.state is TimerState.CANCELLED


def test_cancel_after_fire_is_a_no_op():
    fired = threading.Event()
    timer = start_timer(0.01, fired.set)
    assert fired.wait(timeout=5)

    assert timer.cancel() is False
    assert timer.state is TimerState.FIRED


def test_cancel_twice():
    timer = Timer(10, lambda: None)
    timer.start()

    assert timer.cancel() is True
    assert timer.cancel() is False


def test_callback_exception_is_logged(caplog):
    done = threading.Event()

    def explode():
        done.set()
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR, logger="timers"):
        timer = start_timer(0.01, explode, name="exploder")
        assert done.wait(timeout=5)
        timer._thread.join(timeout=5)

    assert timer.state is TimerState.FIRED
    assert "exploder" in caplog.text
    assert "boom" in caplog.text


def test_timer_threads_are_daemons():
    timer = Timer(60, lambda: None)
    try:
        assert timer._thread.daemon
    finally:
        timer.cancel()
