from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class Clock(Protocol):
    """Monotonic clock abstraction.

    Game logic reads time through this interface so tests can drive it.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


class Scheduler(Protocol):
    def call_every(self, interval_s: float, callback: Callable[[float], None]) -> "ScheduledCallback": ...

    def poll(self) -> int: ...


class ScheduledCallback:
    """Handle for a periodic callback registered with a ClockScheduler.

    The callback receives the due time of each firing, so catch-up runs see
    the time they were scheduled for rather than the time of the poll.
    """

    def __init__(self, *, interval_s: float, callback: Callable[[float], None], next_due_s: float) -> None:
        self._interval_s = float(interval_s)
        self._callback = callback
        self._next_due_s = float(next_due_s)
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def next_due_s(self) -> float:
        return self._next_due_s

    def cancel(self) -> None:
        # Safe to call repeatedly, including from inside the callback itself.
        self._cancelled = True

    def _run_due(self, now_s: float) -> int:
        fired = 0
        while not self._cancelled and now_s >= self._next_due_s:
            due_s = self._next_due_s
            self._next_due_s += self._interval_s
            self._callback(due_s)
            fired += 1
        return fired


class ClockScheduler:
    """Cooperative scheduler polled from the frame loop.

    Nothing runs on its own: each ``poll()`` fires every callback whose due time
    has passed on the injected clock, catching up on missed intervals in order.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._handles: list[ScheduledCallback] = []

    def call_every(self, interval_s: float, callback: Callable[[float], None]) -> ScheduledCallback:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        handle = ScheduledCallback(
            interval_s=interval_s,
            callback=callback,
            next_due_s=self._clock.now() + float(interval_s),
        )
        self._handles.append(handle)
        logger.debug("Scheduled periodic callback every %.3fs", interval_s)
        return handle

    def pending(self) -> int:
        return sum(1 for h in self._handles if h.active)

    def poll(self) -> int:
        """Run due callbacks. Returns how many callback invocations happened."""

        now_s = self._clock.now()
        fired = 0
        for handle in list(self._handles):
            fired += handle._run_due(now_s)
        self._handles = [h for h in self._handles if h.active]
        return fired
