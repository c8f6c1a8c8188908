from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Protocol


Callback = Callable[[], None]


@dataclass(order=True)
class TimerHandle:
    deadline: float
    seq: int
    callback: Callback = field(compare=False)
    done: bool = field(default=False, compare=False)


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...

    def cancel(self, handle: TimerHandle) -> None: ...


class ManualScheduler:
    """Virtual clock; callbacks fire only when advance() moves past their deadline.

    Each callback runs at most once, in deadline order (ties in scheduling order).
    """

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[TimerHandle] = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(self.now + max(0.0, float(delay)), next(self._seq), callback)
        heapq.heappush(self._queue, handle)
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.done = True

    @property
    def pending(self) -> int:
        return sum(1 for h in self._queue if not h.done)

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run everything that came due. Returns how many ran."""
        self.now += seconds
        fired = 0
        while self._queue and self._queue[0].deadline <= self.now:
            handle = heapq.heappop(self._queue)
            if handle.done:
                continue
            handle.done = True
            handle.callback()
            fired += 1
        return fired

    def run_all(self) -> int:
        """Jump to the last deadline and fire everything pending."""
        if not self._queue:
            return 0
        latest = max(h.deadline for h in self._queue)
        return self.advance(max(0.0, latest - self.now))


class ImmediateScheduler:
    """Runs callbacks synchronously inside call_later."""

    def __init__(self) -> None:
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callback) -> TimerHandle:
        handle = TimerHandle(0.0, next(self._seq), callback, done=True)
        callback()
        return handle

    def cancel(self, handle: TimerHandle) -> None:
        handle.done = True
