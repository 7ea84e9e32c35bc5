"""Single-shot cancellable timers.

Sessions schedule through a ``Scheduler`` so tests can drive time with
``ManualScheduler.advance`` instead of sleeping.
"""
from __future__ import annotations

import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Schedules on an asyncio loop; delays are in seconds."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay), callback)


class ManualTimer:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Virtual clock. Nothing fires until ``advance`` is called."""

    def __init__(self):
        self.now = 0.0
        self._seq = itertools.count()
        self._heap: List[Tuple[float, int, ManualTimer]] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        t = ManualTimer(self.now + max(0.0, delay), callback)
        heapq.heappush(self._heap, (t.when, next(self._seq), t))
        return t

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._heap if not t.cancelled)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due timers in order. Returns the number fired."""
        target = self.now + seconds
        fired = 0
        while self._heap and self._heap[0][0] <= target:
            when, _, t = heapq.heappop(self._heap)
            self.now = when
            if t.cancelled:
                continue
            t.cancelled = True
            t.callback()
            fired += 1
        self.now = target
        return fired
