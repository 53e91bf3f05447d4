"""Selection state machine for one lane of entries.

A lane moves through four states:

- ``INIT``: not shown.
- ``FOCUSING``: entries visible; the pointer's y picks the focused entry.
- ``SELECTING``: the focused entry was committed by dragging inward and the
  selection animation is running.
- ``SELECTED``: the animation finished; dragging back out over the lane's
  edge returns to ``FOCUSING``.

Coordinates handed to :meth:`LaneStateMachine.handle_touch` are lane-local:
``x = 0`` is the lane's left edge and ``x = lane_width`` its right edge. On a
right-docked lane the screen edge is to the right, so "inward" means
``x < lane_width``; on a left-docked lane it means ``x > 0``. There is no
hysteresis band at that boundary.

The lane draws nothing. It reports state, focus and per-entry visual states
through a :class:`~paperlaunch.core.listeners.LaneListener`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from paperlaunch.config import LaneConfig
from paperlaunch.core.animation import AnimationHandle, Animator
from paperlaunch.core.entries import Entry
from paperlaunch.core.geometry import Rect
from paperlaunch.core.listeners import LaneListener
from paperlaunch.core.touch import TouchAction
from paperlaunch.errors import InconsistentFocusError

__all__ = [
    "LaneState",
    "EntryState",
    "EntrySlot",
    "EntryTransition",
    "LaneStateMachine",
    "layout_slots",
    "stagger_schedule",
]

logger = logging.getLogger(__name__)


class LaneState(str, Enum):
    INIT = "init"
    FOCUSING = "focusing"
    SELECTING = "selecting"
    SELECTED = "selected"


class EntryState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    FOCUSED = "focused"


@dataclass(frozen=True, slots=True)
class EntrySlot:
    entry: Entry
    top: int
    height: int

    @property
    def bottom(self) -> int:
        return self.top + self.height

    def contains_y(self, y: float) -> bool:
        return self.top <= y < self.top + self.height


@dataclass(frozen=True, slots=True)
class EntryTransition:
    index: int
    state: EntryState
    delay_ms: int


def layout_slots(
    entries: Sequence[Entry], extent_px: int, lane_height_px: int, gravity: str
) -> tuple[EntrySlot, ...]:
    """Stack *entries* along the lane according to *gravity*."""
    total = len(entries) * extent_px
    if gravity == "top":
        start = 0
    elif gravity == "bottom":
        start = lane_height_px - total
    else:
        start = (lane_height_px - total) // 2
    start = max(0, start)
    return tuple(
        EntrySlot(entry=e, top=start + i * extent_px, height=extent_px)
        for i, e in enumerate(entries)
    )


def stagger_schedule(
    count: int, step_ms: int, except_index: Optional[int] = None
) -> list[tuple[int, int]]:
    """Return ``(index, delay_ms)`` pairs for a centre-out bulk state change.

    The centre entry (odd counts only) goes first, then each symmetric pair
    ``(i, count-1-i)`` moving outward, one *step_ms* later per ring.
    *except_index* is left out but its ring still takes its delay slot.
    """
    out: list[tuple[int, int]] = []
    half = count // 2
    delay = 0
    if count % 2:
        if half != except_index:
            out.append((half, delay))
        delay += step_ms
    for i in range(half - 1, -1, -1):
        for idx in (i, count - 1 - i):
            if idx != except_index:
                out.append((idx, delay))
        delay += step_ms
    return out


class LaneStateMachine:
    """One lane's focus and selection logic."""

    def __init__(
        self,
        entries: Sequence[Entry],
        config: LaneConfig,
        *,
        listener: LaneListener | None = None,
        animator: Animator | None = None,
        lane_height_px: int | None = None,
    ) -> None:
        self._config = config
        self._listener = listener or LaneListener()
        self._animator = animator
        height = lane_height_px if lane_height_px is not None else config.screen_height_px
        self._height = int(height)
        self._slots = layout_slots(
            list(entries), config.entry_extent_px, self._height, config.gravity
        )
        self._entry_states: list[EntryState] = [EntryState.INACTIVE] * len(self._slots)
        self._state = LaneState.INIT
        self._focused: Optional[int] = None
        self._selected: Optional[Entry] = None
        self._animation: AnimationHandle | None = None
        # Bumped for every animation so a stale completion can be recognised.
        self._generation = 0

    # Introspection -------------------------------------------------------
    @property
    def state(self) -> LaneState:
        return self._state

    @property
    def slots(self) -> tuple[EntrySlot, ...]:
        return self._slots

    @property
    def entries(self) -> tuple[Entry, ...]:
        return tuple(s.entry for s in self._slots)

    @property
    def entry_states(self) -> tuple[EntryState, ...]:
        return tuple(self._entry_states)

    @property
    def focused_index(self) -> Optional[int]:
        return self._focused

    @property
    def focused_entry(self) -> Optional[Entry]:
        idx = self._checked_focus()
        return None if idx is None else self._slots[idx].entry

    @property
    def selected_entry(self) -> Optional[Entry]:
        """Entry committed by the last commit gesture (SELECTING/SELECTED)."""
        return self._selected

    @property
    def width(self) -> int:
        return self._config.lane_width_px

    @property
    def height(self) -> int:
        return self._height

    @property
    def is_on_right_side(self) -> bool:
        return self._config.is_on_right_side

    @property
    def animating(self) -> bool:
        return self._animation is not None

    def entry_index_at(self, y: float) -> Optional[int]:
        """First entry (display order) whose ``[top, top+height)`` holds *y*."""
        for i, slot in enumerate(self._slots):
            if slot.contains_y(y):
                return i
        return None

    def selection_geometry(self) -> tuple[Rect, Rect] | None:
        """Lane-local ``(from, to)`` rects of the selection animation.

        The indicator grows from the committed entry's rect to the whole lane.
        """
        if self._state not in (LaneState.SELECTING, LaneState.SELECTED):
            return None
        idx = self._checked_focus()
        if idx is None:
            return None
        slot = self._slots[idx]
        src = Rect.from_size(0, slot.top, self.width, slot.height)
        dst = Rect(0, 0, self.width, self._height)
        return src, dst

    # Inputs --------------------------------------------------------------
    def start(self) -> None:
        """Show the lane (``INIT -> FOCUSING``)."""
        if self._state is LaneState.INIT:
            self._transit(LaneState.FOCUSING)

    def handle_touch(self, action: TouchAction, x: float, y: float) -> None:
        state = self._state
        if state is LaneState.FOCUSING:
            if action.is_release:
                # Release without a commit cancels; entries settle back to ACTIVE.
                self._transit(LaneState.INIT, resting=EntryState.ACTIVE)
                return
            self._update_focus(y)
            if self._focused is not None and self._crossed_inward(x):
                self._transit(LaneState.SELECTING)
        elif state is LaneState.SELECTING:
            if action.is_release:
                self._transit(LaneState.INIT)
        elif state is LaneState.SELECTED:
            if action.is_release:
                self._transit(LaneState.INIT)
            elif self._crossed_outward(x):
                self._transit(LaneState.FOCUSING)

    def focus_index(self, index: Optional[int]) -> None:
        """Apply a focus reported from outside (keys, accessibility).

        Ignored unless FOCUSING. An index outside the entries clears focus.
        """
        if self._state is not LaneState.FOCUSING:
            return
        if index is not None:
            try:
                self._validate_index(index)
            except InconsistentFocusError as e:
                logger.warning("ignoring focus request: %s", e)
                index = None
        self._apply_focus(index)

    def reset(self) -> None:
        """Force ``INIT`` from any state; idempotent and never raises."""
        try:
            if self._state is LaneState.INIT and self._animation is None:
                return
            self._transit(LaneState.INIT)
        except Exception:
            logger.exception("lane reset failed; forcing INIT")
            self._cancel_animation()
            self._state = LaneState.INIT
            self._focused = None
            self._selected = None

    # Internals -----------------------------------------------------------
    def _crossed_inward(self, x: float) -> bool:
        if self._config.is_on_right_side:
            return x < self.width
        return x > 0

    def _crossed_outward(self, x: float) -> bool:
        if self._config.is_on_right_side:
            return x > self.width
        return x < 0

    def _validate_index(self, index: int) -> None:
        if not 0 <= index < len(self._slots):
            raise InconsistentFocusError(index, len(self._slots))

    def _checked_focus(self) -> Optional[int]:
        idx = self._focused
        if idx is None:
            return None
        try:
            self._validate_index(idx)
        except InconsistentFocusError as e:
            logger.warning("clearing stale focus: %s", e)
            self._focused = None
            return None
        return idx

    def _update_focus(self, y: float) -> None:
        self._apply_focus(self.entry_index_at(y))

    def _apply_focus(self, index: Optional[int]) -> None:
        changed: list[EntryTransition] = []
        for i in range(len(self._slots)):
            desired = EntryState.FOCUSED if i == index else EntryState.ACTIVE
            if self._entry_states[i] is not desired:
                self._entry_states[i] = desired
                changed.append(EntryTransition(i, desired, 0))
        if changed:
            self._emit("on_entry_states", tuple(changed))
        if index != self._focused:
            self._focused = index
            self._emit("on_state_changed", LaneState.FOCUSING, LaneState.FOCUSING)

    def _send_all(
        self, state: EntryState, *, staggered: bool, except_index: Optional[int] = None
    ) -> None:
        step = self._config.entry_move_step_ms if staggered else 0
        transitions = []
        for idx, delay in stagger_schedule(len(self._slots), step, except_index):
            self._entry_states[idx] = state
            transitions.append(EntryTransition(idx, state, delay))
        if transitions:
            self._emit("on_entry_states", tuple(transitions))

    def _transit(
        self, new: LaneState, *, resting: EntryState = EntryState.INACTIVE
    ) -> None:
        old = self._state
        logger.debug("lane %s -> %s (focus=%s)", old.value, new.value, self._focused)
        if new is LaneState.INIT:
            self._cancel_animation()
            had_selection = old in (LaneState.SELECTING, LaneState.SELECTED)
            self._focused = None
            self._selected = None
            self._state = new
            self._send_all(resting, staggered=resting is EntryState.ACTIVE)
            if had_selection:
                self._emit("on_item_selecting", None)
        elif new is LaneState.FOCUSING:
            self._cancel_animation()
            self._focused = None
            self._selected = None
            self._state = new
            self._send_all(EntryState.ACTIVE, staggered=True)
            self._emit("on_item_selecting", None)
        elif new is LaneState.SELECTING:
            idx = self._checked_focus()
            if idx is None:
                return
            self._selected = self._slots[idx].entry
            self._state = new
            self._send_all(EntryState.INACTIVE, staggered=True, except_index=idx)
            self._emit("on_item_selecting", self._selected)
        elif new is LaneState.SELECTED:
            self._animation = None
            self._state = new
            if self._selected is not None:
                self._emit("on_item_selected", self._selected)

        self._emit("on_state_changed", old, new)

        if new is LaneState.SELECTING and self._state is LaneState.SELECTING:
            self._start_animation()

    def _start_animation(self) -> None:
        self._generation += 1
        generation = self._generation
        if self._animator is None:
            self._on_animation_done(generation)
            return
        try:
            handle = self._animator.start(
                self._config.selection_animation_s,
                lambda: self._on_animation_done(generation),
            )
        except Exception:
            logger.exception("selection animation failed to start; selecting now")
            self._on_animation_done(generation)
            return
        self._animation = handle

    def _on_animation_done(self, generation: int) -> None:
        if generation != self._generation or self._state is not LaneState.SELECTING:
            logger.debug("dropping stale animation completion %d", generation)
            return
        self._transit(LaneState.SELECTED)

    def _cancel_animation(self) -> None:
        handle, self._animation = self._animation, None
        # Invalidate any completion that is already queued.
        self._generation += 1
        if handle is None:
            return
        try:
            handle.cancel()
        except Exception:
            logger.debug("animation cancel failed", exc_info=True)

    def _emit(self, hook: str, *args: object) -> None:
        try:
            getattr(self._listener, hook)(*args)
        except Exception:
            logger.exception("lane listener %s failed", hook)
