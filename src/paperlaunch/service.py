"""Launcher service: owns the tree snapshot, the router and the live session.

The service is what the platform shell talks to. It receives raw samples
from the capture strip (strip-local coordinates) through
:meth:`LauncherService.handle_touch` and the system's lifecycle
notifications through the trigger methods. Every trigger that can hide the
overlay ends the live session, which forces its lanes back to ``INIT``.

Settings or display changes rebuild the :class:`~paperlaunch.config.LaneConfig`
snapshot, the router and the paginated tree; a session that is already
showing keeps the snapshot it was started with.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence

from paperlaunch.config import DisplayMetrics, LaneConfig, make_lane_config
from paperlaunch.core.animation import Animator, AsyncAnimator
from paperlaunch.core.clock import Clock
from paperlaunch.core.entries import Entry
from paperlaunch.core.events import EventBus, unpack
from paperlaunch.core.listeners import BusLaneListener, LaneListener
from paperlaunch.core.pagination import paginate
from paperlaunch.core.router import Forward, StartSession, TouchRouter
from paperlaunch.core.session import OverlaySession
from paperlaunch.core.touch import TouchEvent
from paperlaunch.errors import PaperLaunchError
from paperlaunch.settings.schema import Settings, parse_settings
from paperlaunch.settings.store import SettingsStore
from paperlaunch.settings.values import PAGINATION_DEFAULTS, VIRTUAL_FOLDER
from paperlaunch.storage.entries_store import EntriesStore

__all__ = ["LauncherService", "TOPIC_CFG_CHANGED", "TOPIC_ENTRIES_CHANGED"]

logger = logging.getLogger(__name__)

TOPIC_CFG_CHANGED = "cfg.changed"
TOPIC_ENTRIES_CHANGED = "entries.changed"


class LauncherService:
    """Single owner of the launcher's runtime state.

    Parameters
    ----------
    store: Source of the configured entries.
    metrics: Current display metrics.
    settings: Initial settings; loaded from :class:`SettingsStore` if omitted.
    bus: Event bus for ``run()`` and, unless *listener* is given, for
        republishing lane events.
    clock: Drives the selection animation. Without a clock (and without an
        explicit *animator*) selections complete immediately.
    persist: Write ``pause()``/``play()`` changes back to the settings file.
    """

    def __init__(
        self,
        store: EntriesStore,
        metrics: DisplayMetrics,
        *,
        settings: Settings | None = None,
        bus: EventBus | None = None,
        clock: Clock | None = None,
        listener: LaneListener | None = None,
        animator: Animator | None = None,
        persist: bool = False,
    ) -> None:
        self._store = store
        self._metrics = metrics
        self._settings = settings if settings is not None else SettingsStore.load()
        self._bus = bus
        if listener is None:
            listener = BusLaneListener(bus) if bus is not None else LaneListener()
        self._listener = listener
        if animator is None and clock is not None:
            animator = AsyncAnimator(clock)
        self._animator = animator
        self._persist = persist
        self._running = False
        self._session: Optional[OverlaySession] = None
        self._tasks: list[asyncio.Task[None]] = []

        self._config = make_lane_config(self._settings, metrics)
        self._router = TouchRouter.for_screen_rect(self._config.strip_rect)
        self._entries: tuple[Entry, ...] = self._load_entries()

    # Introspection -------------------------------------------------------
    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def config(self) -> LaneConfig:
        return self._config

    @property
    def router(self) -> TouchRouter:
        return self._router

    @property
    def entries(self) -> tuple[Entry, ...]:
        """Paginated root entries handed to the next session."""
        return self._entries

    @property
    def session(self) -> Optional[OverlaySession]:
        return self._session

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_showing(self) -> bool:
        return self._session is not None and self._session.is_alive

    # Touch input ---------------------------------------------------------
    def handle_touch(self, event: TouchEvent) -> bool:
        """Route one strip-local sample; return whether it was consumed."""
        if not (self._running and self._settings.active):
            return False
        decision = self._router.on_touch(self._session, event)
        if isinstance(decision, StartSession):
            self._session = OverlaySession.begin(
                self._entries,
                self._config,
                self._router.to_screen(event),
                listener=self._listener,
                animator=self._animator,
            )
            decision = self._router.on_touch(self._session, event)
        session = self._session
        if isinstance(decision, Forward) and session is not None:
            session.feed(decision.x, decision.y, decision.action)
            if not session.is_alive:
                self._session = None
            return True
        return False

    # Lifecycle triggers --------------------------------------------------
    def activate(self) -> None:
        """Install the strip and start accepting touches."""
        if self._running:
            return
        self._running = True
        logger.info("launcher activated (strip=%s)", self._config.strip_rect)

    def deactivate(self) -> None:
        """Remove the strip; any showing overlay is dismissed."""
        self._end_session("deactivate")
        if self._running:
            self._running = False
            logger.info("launcher deactivated")

    def pause(self) -> None:
        """Stop reacting to the strip until :meth:`play`; persisted as ``active``."""
        self._end_session("pause")
        self._set_active(False)

    def play(self) -> None:
        self._set_active(True)

    def notify_data_changed(self) -> None:
        """Reload the entry tree; the showing session keeps its snapshot."""
        self._entries = self._load_entries()
        logger.info("entries reloaded (%d at root)", len(self._entries))

    def notify_config_changed(self, settings: Settings) -> None:
        """Apply new settings: dismiss the overlay and rebuild every snapshot."""
        self._end_session("config changed")
        self._rebuild(settings, self._metrics)

    def screen_off(self) -> None:
        self._end_session("screen off")

    def outside_touch(self) -> None:
        self._end_session("outside touch")

    def focus_lost(self) -> None:
        self._end_session("focus lost")

    def orientation_changed(self, metrics: DisplayMetrics) -> None:
        self._end_session("orientation changed")
        self._rebuild(self._settings, metrics)

    # Bus integration -----------------------------------------------------
    async def run(self) -> None:
        """Follow ``cfg.changed`` and ``entries.changed`` on the bus."""
        if self._tasks:
            return
        if self._bus is None:
            raise RuntimeError("LauncherService.run() needs an EventBus")
        self.activate()
        cfg_sub = self._bus.subscribe(TOPIC_CFG_CHANGED)
        data_sub = self._bus.subscribe(TOPIC_ENTRIES_CHANGED)

        async def _cfg_loop() -> None:
            async for env in cfg_sub:
                try:
                    settings = parse_settings(unpack(env.payload))
                except PaperLaunchError as e:
                    logger.warning("ignoring invalid settings update: %s", e)
                    continue
                try:
                    self.notify_config_changed(settings)
                except PaperLaunchError as e:
                    logger.warning("settings update not applicable: %s", e)

        async def _data_loop() -> None:
            async for _ in data_sub:
                self.notify_data_changed()

        self._tasks = [
            asyncio.create_task(_cfg_loop(), name="launcher-cfg"),
            asyncio.create_task(_data_loop(), name="launcher-entries"),
        ]

    async def stop(self) -> None:
        tasks, self._tasks = self._tasks, []
        for t in tasks:
            if not t.done():
                t.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self.deactivate()

    # Internals -----------------------------------------------------------
    def _end_session(self, reason: str) -> None:
        session, self._session = self._session, None
        if session is not None and session.is_alive:
            logger.debug("ending session: %s", reason)
            session.end()

    def _set_active(self, active: bool) -> None:
        if self._settings.active == active:
            return
        self._settings = self._settings.model_copy(update={"active": active})
        logger.info("launcher %s", "resumed" if active else "paused")
        if self._persist:
            SettingsStore.save(self._settings)

    def _rebuild(self, settings: Settings, metrics: DisplayMetrics) -> None:
        # Validate first so a rejected change leaves the previous snapshot.
        config = make_lane_config(settings, metrics)
        self._settings = settings
        self._metrics = metrics
        self._config = config
        self._router = TouchRouter.for_screen_rect(config.strip_rect)
        self._entries = self._load_entries()
        logger.info(
            "rebuilt lane config: max_visible=%d lane_width=%d strip=%s",
            config.max_visible,
            config.lane_width_px,
            config.strip_rect,
        )

    def _load_entries(self) -> tuple[Entry, ...]:
        return paginate_root(self._store.load_root_content(), self._config)


def paginate_root(entries: Sequence[Entry], config: LaneConfig) -> tuple[Entry, ...]:
    """Fold *entries* for *config* using the configured virtual folder label."""
    return tuple(
        paginate(
            entries,
            config.max_visible,
            folder_name=VIRTUAL_FOLDER["name"],
            folder_icon=VIRTUAL_FOLDER.get("icon"),
            max_depth=int(PAGINATION_DEFAULTS["max_depth"]),
        )
    )
