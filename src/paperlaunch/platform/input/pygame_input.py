"""Pygame input backend: mouse events as touch samples.

Left button down/up become ``DOWN``/``UP`` and motion while the button is
held becomes ``MOVE``. Positions are window coordinates; pass the capture
strip's on-screen origin to get strip-local samples for
:meth:`paperlaunch.service.LauncherService.handle_touch`.
"""

from __future__ import annotations

from typing import Any, Generator, Optional

from paperlaunch.core.geometry import Point
from paperlaunch.core.touch import TouchAction, TouchEvent

pg: Any = None
try:  # pragma: no cover - optional dependency in CI
    import pygame as _pg

    pg = _pg
except ImportError:  # pragma: no cover
    pg = None


class PygameTouchBackend:
    """Translates pygame mouse events into :class:`TouchEvent` samples.

    Use :meth:`pump` in the main loop; tests can call :meth:`translate`
    with synthesized ``pygame.event.Event`` objects.
    """

    def __init__(self, strip_origin: Point = Point()) -> None:
        if pg is None:
            raise RuntimeError("pygame not available for input backend")
        self._origin = strip_origin
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    @property
    def strip_origin(self) -> Point:
        return self._origin

    @strip_origin.setter
    def strip_origin(self, origin: Point) -> None:
        self._origin = origin

    def translate(self, ev: Any) -> Optional[TouchEvent]:
        ts = float(pg.time.get_ticks()) / 1000.0
        if ev.type == pg.MOUSEBUTTONDOWN and getattr(ev, "button", 1) == 1:
            self._held = True
            return self._sample(TouchAction.DOWN, ev.pos, ts)
        if ev.type == pg.MOUSEMOTION and self._held:
            return self._sample(TouchAction.MOVE, ev.pos, ts)
        if ev.type == pg.MOUSEBUTTONUP and getattr(ev, "button", 1) == 1 and self._held:
            self._held = False
            return self._sample(TouchAction.UP, ev.pos, ts)
        if ev.type == pg.WINDOWLEAVE and self._held:
            self._held = False
            return TouchEvent(TouchAction.CANCEL, 0.0, 0.0, ts)
        return None

    def pump(self) -> Generator[TouchEvent, None, None]:
        for ev in pg.event.get():
            sample = self.translate(ev)
            if sample is not None:
                yield sample

    def _sample(self, action: TouchAction, pos: Any, ts: float) -> TouchEvent:
        return TouchEvent(
            action,
            float(pos[0]) - self._origin.x,
            float(pos[1]) - self._origin.y,
            ts,
        )
