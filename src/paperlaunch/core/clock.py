"""Clock abstraction used to time lane animations.

``RealClock`` follows the system monotonic clock; ``SimClock`` only moves
when told to, which keeps animation-driven transitions deterministic in
tests:

    clock = SimClock()
    task = asyncio.create_task(clock.sleep(0.25))
    await asyncio.sleep(0)
    clock.advance(0.25)  # wakes the sleeper
    await task
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import time
from typing import Protocol

__all__ = ["Clock", "RealClock", "SimClock"]


class Clock(Protocol):
    def monotonic(self) -> float:
        """Return monotonic time in seconds."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the caller for *seconds* of clock time."""
        ...


class RealClock:
    def monotonic(self) -> float:
        return time.monotonic()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(max(0.0, seconds))


class SimClock:
    """Manually advanced clock.

    Sleepers are kept in a heap keyed by due time and resolved by
    :meth:`advance` or :meth:`set_time`. Cancelled sleepers are skipped.
    """

    def __init__(self, *, start: float = 0.0) -> None:
        self._now = float(start)
        self._waiters: list[tuple[float, int, asyncio.Future[None]]] = []
        self._seq = itertools.count()

    def monotonic(self) -> float:
        return self._now

    def advance(self, dt: float) -> None:
        if dt < 0:
            raise ValueError(f"Cannot advance time backwards: dt={dt}")
        self._now += dt
        self._wake()

    def set_time(self, t: float) -> None:
        if t < self._now:
            raise ValueError(f"Cannot set time backwards: {t} < {self._now}")
        self._now = t
        self._wake()

    async def sleep(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError(f"Sleep duration must be non-negative: {seconds}")
        if seconds == 0:
            await asyncio.sleep(0)
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (self._now + seconds, next(self._seq), fut))
        await fut

    def pending(self) -> int:
        """Number of sleepers that have not been woken or cancelled."""
        return sum(1 for _, _, fut in self._waiters if not fut.done())

    def next_due(self) -> float | None:
        for due, _, fut in sorted(self._waiters):
            if not fut.done():
                return due
        return None

    def _wake(self) -> None:
        while self._waiters and self._waiters[0][0] <= self._now:
            _, _, fut = heapq.heappop(self._waiters)
            if not fut.done():
                fut.set_result(None)
