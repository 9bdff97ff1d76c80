"""
Cancellable timers for the table's waiting phases (AI delay, group-card
selection timeout, summary auto-advance).

- ``ManualScheduler``: virtual clock, advanced explicitly. Used by tests and
  offline runs; callbacks fire in due order on the caller's thread.
- ``ThreadingScheduler``: wall-clock timers on background threads. The table
  serializes callbacks with its own lock.
"""
from __future__ import annotations

import heapq
import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Protocol

logger = logging.getLogger("warfaire.scheduler")

Callback = Callable[[], None]


class TimerHandle(Protocol):
    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything that can run ``callback`` after ``delay`` seconds and hand back a cancel handle."""

    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...


@dataclass(order=True)
class ManualTimer:
    due: float
    seq: int
    callback: Callback = field(compare=False)
    _cancelled: bool = field(default=False, compare=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler:
    """
    Deterministic scheduler driven by ``advance`` / ``run_until_idle``.

    Usage:
        sched = ManualScheduler()
        sched.call_later(1.0, fn)
        sched.advance(1.0)   # fn runs here
    """

    def __init__(self) -> None:
        self.now: float = 0.0
        self._queue: list[ManualTimer] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> ManualTimer:
        timer = ManualTimer(due=self.now + max(0.0, delay), seq=next(self._seq), callback=callback)
        heapq.heappush(self._queue, timer)
        return timer

    @property
    def pending_count(self) -> int:
        return sum(1 for t in self._queue if not t.cancelled)

    def _pop_live(self, until: float | None) -> ManualTimer | None:
        while self._queue:
            if until is not None and self._queue[0].due > until:
                return None
            timer = heapq.heappop(self._queue)
            if not timer.cancelled:
                return timer
        return None

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing every timer that comes due. Returns how many fired."""
        target = self.now + seconds
        fired = 0
        while True:
            timer = self._pop_live(target)
            if timer is None:
                break
            self.now = timer.due
            timer.callback()
            fired += 1
        self.now = target
        return fired

    def run_until_idle(self, max_callbacks: int = 100_000) -> int:
        """Fire timers in due order until none are left."""
        fired = 0
        while fired < max_callbacks:
            timer = self._pop_live(None)
            if timer is None:
                return fired
            self.now = max(self.now, timer.due)
            timer.callback()
            fired += 1
        raise RuntimeError(f"Scheduler still busy after {max_callbacks} callbacks")


class ThreadTimer:
    def __init__(self, delay: float, callback: Callback) -> None:
        self._callback = callback
        self._cancelled = False
        self._timer = threading.Timer(max(0.0, delay), self._fire)
        self._timer.daemon = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def start(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        self._cancelled = True
        self._timer.cancel()

    def _fire(self) -> None:
        if self._cancelled:
            return
        try:
            self._callback()
        except Exception as exc:
            logger.exception("[TIMER] Timer callback failed: %s", exc)


class ThreadingScheduler:
    """Wall-clock scheduler backed by ``threading.Timer``."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._timers: list[ThreadTimer] = []

    def call_later(self, delay: float, callback: Callback) -> ThreadTimer:
        timer = ThreadTimer(delay, callback)
        with self._lock:
            self._timers = [t for t in self._timers if not t.cancelled]
            self._timers.append(timer)
        timer.start()
        return timer

    def cancel_all(self) -> None:
        with self._lock:
            timers, self._timers = self._timers, []
        for timer in timers:
            timer.cancel()


__all__ = [
    "ManualScheduler",
    "Scheduler",
    "ThreadingScheduler",
    "TimerHandle",
]
