"""One showing of the launcher overlay.

An :class:`OverlaySession` starts with a single lane for the root entries.
Selecting a folder opens another lane one lane-width further inward; backing
out of a selection (``SELECTED -> FOCUSING``) closes every lane after it.
Releasing the pointer launches the deepest selected entry when it is not a
folder, then ends the session.

Lane 0 sits directly inward of the capture strip, so a finger resting on
the strip is outside every lane and entries are committed by dragging into
the screen.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from paperlaunch.config import LaneConfig
from paperlaunch.core.animation import Animator
from paperlaunch.core.entries import Entry, Folder
from paperlaunch.core.geometry import Point
from paperlaunch.core.lane import EntryTransition, LaneState, LaneStateMachine
from paperlaunch.core.listeners import LaneListener
from paperlaunch.core.touch import TouchAction

__all__ = ["OverlaySession"]

logger = logging.getLogger(__name__)


class _LaneHook(LaneListener):
    """Forwards one lane's callbacks to its session, tagged with the depth."""

    def __init__(self, session: "OverlaySession", depth: int) -> None:
        self._session = session
        self._depth = depth

    def on_item_selecting(self, entry: Optional[Entry]) -> None:
        self._session._listener.on_item_selecting(entry)

    def on_item_selected(self, entry: Entry) -> None:
        self._session._lane_selected(self._depth, entry)

    def on_state_changed(self, old: LaneState, new: LaneState) -> None:
        self._session._lane_state_changed(self._depth, old, new)

    def on_entry_states(self, transitions: Sequence[EntryTransition]) -> None:
        self._session._listener.on_entry_states(transitions)


class OverlaySession:
    """Binds lanes to one overlay activation. Create with :meth:`begin`."""

    def __init__(
        self,
        entries: Sequence[Entry],
        config: LaneConfig,
        *,
        listener: LaneListener | None = None,
        animator: Animator | None = None,
        origin: Point = Point(),
        overlay_origin: Point = Point(),
    ) -> None:
        self._root = tuple(entries)
        self._config = config
        self._listener = listener or LaneListener()
        self._animator = animator
        self._origin = origin
        self._overlay_origin = overlay_origin
        self._lanes: list[LaneStateMachine] = []
        self._alive = True

    @classmethod
    def begin(
        cls,
        entries: Sequence[Entry],
        config: LaneConfig,
        origin: Point,
        *,
        listener: LaneListener | None = None,
        animator: Animator | None = None,
        overlay_origin: Point = Point(),
    ) -> "OverlaySession":
        """Open a session for *entries* started by a touch at screen *origin*."""
        session = cls(
            entries,
            config,
            listener=listener,
            animator=animator,
            origin=origin,
            overlay_origin=overlay_origin,
        )
        logger.debug("session begin at (%.1f, %.1f)", origin.x, origin.y)
        session._push_lane(session._root)
        return session

    # Introspection -------------------------------------------------------
    @property
    def is_alive(self) -> bool:
        return self._alive

    @property
    def origin(self) -> Point:
        return self._origin

    @property
    def overlay_origin(self) -> Point:
        return self._overlay_origin

    @property
    def lanes(self) -> tuple[LaneStateMachine, ...]:
        return tuple(self._lanes)

    def lane_left(self, depth: int) -> int:
        """Overlay x of the left edge of the lane at *depth*."""
        width = self._config.lane_width_px
        strip = self._config.strip_rect
        if self._config.is_on_right_side:
            return strip.left - (depth + 1) * width - int(self._overlay_origin.x)
        return strip.right + depth * width - int(self._overlay_origin.x)

    # Inputs --------------------------------------------------------------
    def feed(self, x: float, y: float, action: TouchAction) -> None:
        """Handle one overlay-space sample."""
        if not self._alive:
            return
        if action.is_release:
            target = self._launch_target()
            if target is not None:
                logger.info("launching %s (%s)", target.id, target.name)
                try:
                    self._listener.on_launch(target)
                except Exception:
                    logger.exception("launch listener failed")
            for depth, lane in enumerate(list(self._lanes)):
                lane.handle_touch(action, x - self.lane_left(depth), y)
            self.end()
            return
        for depth, lane in enumerate(list(self._lanes)):
            if depth >= len(self._lanes) or self._lanes[depth] is not lane:
                break
            lane.handle_touch(action, x - self.lane_left(depth), y)

    def end(self) -> None:
        """Reset every lane to INIT and release them; safe to call repeatedly."""
        if not self._alive:
            return
        self._alive = False
        for lane in reversed(self._lanes):
            lane.reset()
        self._lanes.clear()
        logger.debug("session ended")

    # Lane management -----------------------------------------------------
    def _push_lane(self, entries: Sequence[Entry]) -> LaneStateMachine:
        lane = LaneStateMachine(
            entries,
            self._config,
            listener=_LaneHook(self, len(self._lanes)),
            animator=self._animator,
        )
        self._lanes.append(lane)
        lane.start()
        return lane

    def _truncate(self, depth: int) -> None:
        while len(self._lanes) > depth:
            self._lanes.pop().reset()

    def _launch_target(self) -> Optional[Entry]:
        for lane in reversed(self._lanes):
            if lane.state is LaneState.SELECTED:
                entry = lane.selected_entry
                if entry is None or isinstance(entry, Folder):
                    return None
                return entry
        return None

    def _lane_selected(self, depth: int, entry: Entry) -> None:
        self._listener.on_item_selected(entry)
        if self._alive and isinstance(entry, Folder):
            self._truncate(depth + 1)
            self._push_lane(entry.entries)

    def _lane_state_changed(self, depth: int, old: LaneState, new: LaneState) -> None:
        self._listener.on_state_changed(old, new)
        if old is LaneState.SELECTED and new is LaneState.FOCUSING:
            self._truncate(depth + 1)
