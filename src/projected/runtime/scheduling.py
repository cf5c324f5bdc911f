"""
MIT License
Copyright (c) 2026 arpan404
See LICENSE file for full license text.

Timer scheduling used by the batching dispatcher.

``LoopScheduler`` arms timers on the running asyncio loop. ``ManualScheduler``
keeps a virtual clock that tests advance explicitly, so batch windows can be
exercised without sleeping.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol


class TimerHandle(Protocol):
    """Cancellable handle returned by ``Scheduler.call_later``."""

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Clock abstraction owning delayed callbacks."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by the running event loop clock."""

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_s), callback)


@dataclass(order=True, slots=True)
class _ManualTimer:
    due_s: float
    seq: int
    callback: Callable[[], None] = field(compare=False)
    cancelled: bool = field(default=False, compare=False)

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Deterministic scheduler for tests.

    Timers fire only from ``advance``/``run_all``, in due-time order; timers
    armed by a firing callback run in the same call when already due.
    """

    def __init__(self) -> None:
        self._now_s = 0.0
        self._timers: list[_ManualTimer] = []
        self._seq = itertools.count()

    @property
    def now_s(self) -> float:
        return self._now_s

    @property
    def pending_count(self) -> int:
        return sum(1 for timer in self._timers if not timer.cancelled)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> TimerHandle:
        timer = _ManualTimer(
            due_s=self._now_s + max(0.0, delay_s),
            seq=next(self._seq),
            callback=callback,
        )
        heapq.heappush(self._timers, timer)
        return timer

    def advance(self, delta_s: float) -> int:
        """Move the clock forward and fire due timers. Returns the number fired."""
        target = self._now_s + max(0.0, delta_s)
        fired = 0
        while self._timers and self._timers[0].due_s <= target:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now_s = max(self._now_s, timer.due_s)
            timer.callback()
            fired += 1
        self._now_s = target
        return fired

    def run_all(self) -> int:
        """Fire every armed timer regardless of due time."""
        fired = 0
        while self._timers:
            timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now_s = max(self._now_s, timer.due_s)
            timer.callback()
            fired += 1
        return fired
