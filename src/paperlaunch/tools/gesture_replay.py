"""JSONL gesture recorder and replayer.

A gesture file holds one :class:`~paperlaunch.core.touch.TouchEvent` per line
in strip-local coordinates:

    {"action": "down", "x": 1079.0, "y": 600.0, "ts": 0.0}
    {"action": "move", "x": 990.0, "y": 610.0, "ts": 0.05}
    {"action": "up", "x": 990.0, "y": 610.0, "ts": 0.4}

Recording:

    with GestureRecorder("swipe.jsonl") as rec:
        rec.record(TouchEvent(TouchAction.DOWN, 1079, 600, ts=0.0))

Replaying with simulated time (deterministic):

    clock = SimClock()
    replayer = GestureReplayer("swipe.jsonl", clock)
    task = asyncio.create_task(replayer.run(service.handle_touch))
    while (t := replayer.next_due_monotonic()) is not None:
        clock.set_time(t)
        await asyncio.sleep(0)
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Iterable, TextIO

from paperlaunch.core.clock import Clock
from paperlaunch.core.touch import TouchEvent

__all__ = ["GestureRecorder", "GestureReplayer", "load_gesture"]

logger = logging.getLogger(__name__)


def load_gesture(path: str | Path) -> list[TouchEvent]:
    """Read a gesture file, skipping blank and invalid lines, sorted by ``ts``."""
    events: list[TouchEvent] = []
    with open(path, "r", encoding="utf-8") as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                events.append(TouchEvent.from_dict(json.loads(line)))
            except (ValueError, KeyError, TypeError) as e:
                logger.debug("skipping invalid line %d: %s", line_num, e)
    events.sort(key=lambda e: e.ts)
    return events


class GestureRecorder:
    """Appends touch events to a JSONL file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._fh: TextIO | None = None
        self.count = 0

    def __enter__(self) -> "GestureRecorder":
        self.open()
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def open(self) -> None:
        if self._fh is None:
            self._fh = open(self._path, "w", encoding="utf-8")

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None

    def record(self, event: TouchEvent) -> None:
        if self._fh is None:
            raise RuntimeError("recorder is not open")
        self._fh.write(json.dumps(event.to_dict()) + "\n")
        self._fh.flush()
        self.count += 1

    def record_all(self, events: Iterable[TouchEvent]) -> None:
        for ev in events:
            self.record(ev)


class GestureReplayer:
    """Feeds a recorded gesture into a sink, timed by a :class:`Clock`.

    Event ``ts`` values are relative; the first event is due at the clock
    time :meth:`run` starts (or *start_at*). *speed* > 1 replays faster.
    """

    def __init__(
        self,
        path: str | Path,
        clock: Clock,
        *,
        speed: float = 1.0,
        start_at: float | None = None,
    ) -> None:
        if speed <= 0:
            raise ValueError("speed must be > 0")
        self._path = Path(path)
        self._clock = clock
        self._speed = float(speed)
        self._start_at = start_at
        self._events: list[TouchEvent] | None = None
        self._schedule: list[tuple[float, TouchEvent]] = []
        self._running = False

    @property
    def events(self) -> list[TouchEvent]:
        if self._events is None:
            self._events = load_gesture(self._path)
        return self._events

    def next_due_monotonic(self) -> float | None:
        """Clock time of the next event still to be fed, if any."""
        return self._schedule[0][0] if self._schedule else None

    async def run(self, sink: Callable[[TouchEvent], Any]) -> int:
        """Feed every event to *sink*; return how many were fed."""
        if self._running:
            raise RuntimeError("replayer is already running")
        events = self.events
        if not events:
            logger.warning("no valid events in %s", self._path)
            return 0
        self._running = True
        base = self._start_at if self._start_at is not None else self._clock.monotonic()
        first = events[0].ts
        self._schedule = [(base + (e.ts - first) / self._speed, e) for e in events]
        fed = 0
        try:
            while self._schedule:
                due, ev = self._schedule[0]
                delay = due - self._clock.monotonic()
                if delay > 0:
                    await self._clock.sleep(delay)
                self._schedule.pop(0)
                sink(ev)
                fed += 1
        finally:
            self._schedule = []
            self._running = False
        logger.debug("replayed %d events from %s", fed, self._path)
        return fed
