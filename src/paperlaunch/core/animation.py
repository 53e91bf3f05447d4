"""Timed completion callbacks for lane animations.

The core never draws; it only needs to know *when* an animation it asked the
presentation layer to run is over. :class:`AsyncAnimator` schedules that
moment as an asyncio task on the loop that owns the lane, so the completion
callback runs on the same sequential context as touch handling and teardown.

Cancellation is best effort: :meth:`AnimationHandle.cancel` marks the handle
and cancels the task, and a cancelled handle never invokes its callback even
if the task was already past its sleep.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from paperlaunch.core.clock import Clock

__all__ = ["Animator", "AnimationHandle", "AsyncAnimator"]

logger = logging.getLogger(__name__)


class AnimationHandle:
    __slots__ = ("_task", "_cancelled", "_finished")

    def __init__(self) -> None:
        self._task: asyncio.Task[None] | None = None
        self._cancelled = False
        self._finished = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        return self._finished

    def cancel(self) -> None:
        if self._cancelled or self._finished:
            return
        self._cancelled = True
        task = self._task
        if task is None or task.done():
            return
        try:
            task.cancel()
        except RuntimeError:
            # Loop already closed; the cancelled flag still suppresses the callback.
            logger.debug("animation task cancel failed", exc_info=True)


class Animator(Protocol):
    def start(
        self, duration_s: float, on_done: Callable[[], None]
    ) -> AnimationHandle:
        ...


class AsyncAnimator:
    """Runs ``on_done`` once *duration_s* of clock time has elapsed."""

    def __init__(self, clock: Clock) -> None:
        self._clock = clock

    def start(
        self, duration_s: float, on_done: Callable[[], None]
    ) -> AnimationHandle:
        loop = asyncio.get_running_loop()
        handle = AnimationHandle()
        due = self._clock.monotonic() + max(0.0, float(duration_s))

        async def _run() -> None:
            # Due time is fixed at start so a clock advanced before this task
            # first runs still counts toward the animation.
            await self._clock.sleep(max(0.0, due - self._clock.monotonic()))
            if handle._cancelled:
                return
            handle._finished = True
            try:
                on_done()
            except Exception:
                logger.exception("animation completion callback failed")

        handle._task = loop.create_task(_run(), name="lane-animation")
        return handle
