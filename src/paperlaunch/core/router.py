"""Routing between the capture strip and the overlay.

The strip and the overlay are two independently positioned surfaces that
receive one physical gesture. The router decides whether a sample starts a
session, is forwarded into the live one (translated into the overlay's
coordinate space), or is left for the system to handle.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from paperlaunch.core.geometry import Point, Rect
from paperlaunch.core.touch import TouchAction, TouchEvent

__all__ = [
    "StartSession",
    "Forward",
    "Ignore",
    "RoutingDecision",
    "TouchRouter",
    "remap",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StartSession:
    pass


@dataclass(frozen=True, slots=True)
class Forward:
    x: float
    y: float
    action: TouchAction


@dataclass(frozen=True, slots=True)
class Ignore:
    pass


RoutingDecision = Union[StartSession, Forward, Ignore]


class _LiveSession(Protocol):
    @property
    def is_alive(self) -> bool:
        ...

    @property
    def overlay_origin(self) -> Point:
        ...


def remap(x: float, y: float, strip_origin: Point, overlay_origin: Point) -> tuple[float, float]:
    """Translate strip-local ``(x, y)`` into overlay-local coordinates."""
    return (
        x + (strip_origin.x - overlay_origin.x),
        y + (strip_origin.y - overlay_origin.y),
    )


class TouchRouter:
    """Gate session creation on the strip and remap samples for the overlay.

    Parameters
    ----------
    strip_rect: Hit rectangle of the strip in strip-local coordinates.
    strip_origin: Screen position of the strip's top-left corner.
    """

    def __init__(self, strip_rect: Rect, strip_origin: Point) -> None:
        self.strip_rect = strip_rect
        self.strip_origin = strip_origin

    @classmethod
    def for_screen_rect(cls, screen_rect: Rect) -> "TouchRouter":
        """Router for a strip occupying *screen_rect* on screen."""
        local = Rect(0, 0, screen_rect.width, screen_rect.height)
        return cls(local, screen_rect.origin)

    def on_touch(
        self, session: Optional[_LiveSession], event: TouchEvent
    ) -> RoutingDecision:
        if session is not None and session.is_alive:
            x, y = remap(event.x, event.y, self.strip_origin, session.overlay_origin)
            return Forward(x, y, event.action)
        if event.action is TouchAction.DOWN and self.strip_rect.contains(event.x, event.y):
            logger.debug("strip hit at (%.1f, %.1f), starting session", event.x, event.y)
            return StartSession()
        return Ignore()

    def to_screen(self, event: TouchEvent) -> Point:
        """Screen coordinates of a strip-local sample."""
        return Point(event.x + self.strip_origin.x, event.y + self.strip_origin.y)
