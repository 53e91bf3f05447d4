"""Settings file watcher.

Polls the settings file (default every 0.3s) and, whenever its mtime
changes, publishes the freshly loaded settings on ``cfg.changed``. A
``cfg.reload`` message on the bus forces an immediate check.
"""

from __future__ import annotations

import asyncio
import logging
import os

from paperlaunch.core.events import EventBus, pack
from paperlaunch.settings.store import SettingsStore

logger = logging.getLogger(__name__)

TOPIC_RELOAD = "cfg.reload"
TOPIC_CHANGED = "cfg.changed"


class ConfigWatcher:
    """Watches the settings file and publishes ``cfg.changed`` events."""

    def __init__(self, bus: EventBus, *, poll_interval_s: float = 0.3) -> None:
        if poll_interval_s < 0:
            raise ValueError("poll_interval_s must be >= 0")
        self._bus = bus
        self._config_path = SettingsStore.settings_path()
        self._poll_interval_s = float(poll_interval_s)
        self._last_mtime: float | None = None
        self._run_task: asyncio.Task[None] | None = None
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def path(self) -> str:
        return str(self._config_path)

    async def run(self) -> None:
        if self._run_task:
            return
        sub = self._bus.subscribe(TOPIC_RELOAD)

        async def _runner() -> None:
            logger.info("config watcher started path=%s", self._config_path)
            self.check()
            async for _ in sub:
                self.check()

        async def _poller() -> None:
            while True:
                await asyncio.sleep(self._poll_interval_s)
                self.check()

        self._run_task = asyncio.create_task(_runner(), name="config_watcher")
        if self._poll_interval_s > 0:
            self._poll_task = asyncio.create_task(
                _poller(), name="config_watcher_poll"
            )

    async def stop(self) -> None:
        tasks: list[asyncio.Task[None]] = []
        for t in (self._run_task, self._poll_task):
            if t is not None and not t.done():
                t.cancel()
                tasks.append(t)
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._run_task = None
        self._poll_task = None
        logger.info("config watcher stopped")

    def check(self) -> bool:
        """Publish the settings if the file changed; return whether it did."""
        try:
            mtime = os.path.getmtime(self._config_path)
        except OSError:
            return False
        if mtime == self._last_mtime:
            return False
        self._last_mtime = mtime
        if self._bus.closed:
            return False
        settings = SettingsStore.load()
        self._bus.publish_nowait(TOPIC_CHANGED, pack(settings.model_dump(mode="json")))
        logger.debug("published %s from %s", TOPIC_CHANGED, self._config_path)
        return True
