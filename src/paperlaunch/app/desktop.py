"""Desktop runner: a pygame window standing in for the device screen.

The window is the whole screen. Mouse drags that start on the capture strip
drive :class:`~paperlaunch.service.LauncherService`, the settings file is
followed through :class:`~paperlaunch.tools.config_watcher.ConfigWatcher`,
and launches published on the bus are logged. Lanes of a showing session
are drawn as plain outlines so the state machine can be watched.

    paperlaunch run --width 540 --height 960
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Optional

from paperlaunch.config import DisplayMetrics
from paperlaunch.core.clock import RealClock
from paperlaunch.core.events import EventBus, Subscription, unpack
from paperlaunch.core.geometry import Point
from paperlaunch.core.lane import EntryState
from paperlaunch.core.listeners import TOPIC_LAUNCH
from paperlaunch.platform.input.pygame_input import PygameTouchBackend, pg
from paperlaunch.service import LauncherService
from paperlaunch.storage.entries_store import EntriesStore
from paperlaunch.tools.config_watcher import ConfigWatcher

__all__ = ["DesktopRunner", "run_desktop"]

logger = logging.getLogger(__name__)

_BACKGROUND = (16, 16, 16)


class DesktopRunner:
    """Owns the window, the bus and the services for one desktop run.

    :meth:`step` handles one frame: pending input, then drawing. Tests drive
    it directly with posted pygame events.
    """

    def __init__(
        self,
        store: EntriesStore,
        metrics: DisplayMetrics,
        *,
        poll_interval_s: float = 0.3,
        persist: bool = True,
    ) -> None:
        if pg is None:
            raise RuntimeError("pygame not available for the desktop runner")
        self._metrics = metrics
        self.bus = EventBus()
        self.service = LauncherService(
            store, metrics, bus=self.bus, clock=RealClock(), persist=persist
        )
        self.watcher = ConfigWatcher(self.bus, poll_interval_s=poll_interval_s)
        self.touch = PygameTouchBackend(strip_origin=self._strip_origin())
        self.launched: list[dict[str, Any]] = []
        self._screen: Any = None
        self._launch_task: Optional[asyncio.Task[None]] = None

    async def start(self) -> None:
        if os.environ.get("SDL_VIDEODRIVER") == "dummy":
            os.environ.setdefault("SDL_AUDIODRIVER", "dummy")
        if not pg.get_init():
            pg.init()
        self._screen = pg.display.set_mode(
            (self._metrics.width_px, self._metrics.height_px)
        )
        pg.display.set_caption("PaperLaunch")
        self._launch_task = asyncio.create_task(
            self._follow_launches(self.bus.subscribe(TOPIC_LAUNCH)),
            name="desktop-launches",
        )
        await self.service.run()
        await self.watcher.run()
        logger.info("desktop runner started (%dx%d)", *self._screen.get_size())

    def step(self) -> bool:
        """Process one frame; return False once the window was closed."""
        if pg.event.get(pg.QUIT):
            return False
        # The strip moves when the dock side or offsets change.
        self.touch.strip_origin = self._strip_origin()
        for sample in self.touch.pump():
            self.service.handle_touch(sample)
        self._draw()
        return True

    async def stop(self) -> None:
        await self.watcher.stop()
        await self.service.stop()
        task, self._launch_task = self._launch_task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        await self.bus.close()
        pg.quit()
        logger.info("desktop runner stopped")

    async def _follow_launches(self, sub: Subscription) -> None:
        async for env in sub:
            entry = unpack(env.payload).get("entry") or {}
            self.launched.append(entry)
            logger.info("launch %s -> %s", entry.get("name"), entry.get("target"))

    def _strip_origin(self) -> Point:
        return self.service.config.strip_rect.origin

    def _draw(self) -> None:
        screen = self._screen
        config = self.service.config
        color = tuple(self.service.settings.frame_default_color)
        screen.fill(_BACKGROUND)
        strip = config.strip_rect
        pg.draw.rect(
            screen, color, pg.Rect(strip.left, strip.top, strip.width, strip.height)
        )
        session = self.service.session
        if session is not None and session.is_alive:
            ox, oy = int(session.overlay_origin.x), int(session.overlay_origin.y)
            for depth, lane in enumerate(session.lanes):
                left = session.lane_left(depth) + ox
                frame = pg.Rect(left, oy, lane.width, lane.height)
                pg.draw.rect(screen, color, frame, 1)
                for slot, state in zip(lane.slots, lane.entry_states):
                    if state is EntryState.INACTIVE:
                        continue
                    box = pg.Rect(
                        left + 2, oy + slot.top + 2, lane.width - 4, slot.height - 4
                    )
                    fill = 0 if state is EntryState.FOCUSED else 1
                    pg.draw.rect(screen, color, box, fill)
        pg.display.flip()


async def run_desktop(
    store: EntriesStore,
    metrics: DisplayMetrics,
    *,
    max_seconds: float | None = None,
    frame_s: float = 1.0 / 60.0,
) -> int:
    """Run the desktop window until it is closed or *max_seconds* elapse."""
    runner = DesktopRunner(store, metrics)
    clock = RealClock()
    await runner.start()
    deadline = None if max_seconds is None else clock.monotonic() + max_seconds
    try:
        while deadline is None or clock.monotonic() < deadline:
            if not runner.step():
                break
            await asyncio.sleep(frame_s)
    finally:
        await runner.stop()
    return 0
