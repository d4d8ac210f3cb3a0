"""
timers.py - Wall-clock timer hosts

The engine never sleeps. When it arms a deadline it hands the event to a
TimerHost, which calls back into the engine once the delay has elapsed.
The callback goes through AuctionEngine.fire(), which takes the engine
lock, so a timer thread never touches auction state on its own.

ThreadingTimerHost uses one daemon threading.Timer per pending event.
"""

from __future__ import annotations
import threading
from typing import Callable, Dict

from .scheduled_events import Event


class ThreadingTimerHost:
    """
    TimerHost backed by threading.Timer.

    Thread Safety:
        arm/cancel/cancel_all may be called from any thread.
    """

    def __init__(self):
        self._timers: Dict[str, threading.Timer] = {}
        self.lock = threading.Lock()

    def arm(self, event: Event, delay: float, callback: Callable[[Event], object]) -> None:
        """Call callback(event) after delay seconds (immediately if delay <= 0)."""
        timer = threading.Timer(max(0.0, delay), self._fire, args=(event, callback))
        timer.daemon = True
        with self.lock:
            previous = self._timers.pop(event.event_id, None)
            self._timers[event.event_id] = timer
        if previous is not None:
            previous.cancel()
        timer.start()

    def _fire(self, event: Event, callback: Callable[[Event], object]) -> None:
        with self.lock:
            self._timers.pop(event.event_id, None)
        callback(event)

    def cancel(self, event_id: str) -> None:
        with self.lock:
            timer = self._timers.pop(event_id, None)
        if timer is not None:
            timer.cancel()

    def cancel_all(self) -> None:
        with self.lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def pending_count(self) -> int:
        with self.lock:
            return len(self._timers)
