"""
clock.py - Time sources for the auction engine

Classes:
- Clock: Protocol (defined in core) with a single now() -> seconds
- MonotonicClock: Wall-clock time via time.monotonic()
- ManualClock: Logical time advanced explicitly (simulations and tests)

Deadlines are stored as readings from the engine's clock, so the clock must
never run backwards.
"""

import time


class MonotonicClock:
    """Clock backed by time.monotonic(); unaffected by system clock changes."""

    def now(self) -> float:
        return time.monotonic()

    def __repr__(self):
        return "MonotonicClock()"


class ManualClock:
    """
    Clock that only moves when told to.

    Example:
        clock = ManualClock()
        clock.advance(60)
        clock.now()  # 60.0
    """

    def __init__(self, start: float = 0.0):
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> float:
        """
        Move time forward by a number of seconds.

        Raises:
            ValueError: If seconds is negative
        """
        if seconds < 0:
            raise ValueError(f"Cannot move time backwards: advance({seconds})")
        self._now += seconds
        return self._now

    def set(self, new_time: float) -> None:
        """
        Jump to an absolute time.

        Raises:
            ValueError: If new_time is before the current time
        """
        if new_time < self._now:
            raise ValueError(f"Cannot move time backwards: {new_time} < {self._now}")
        self._now = float(new_time)

    def __repr__(self):
        return f"ManualClock(now={self._now})"
