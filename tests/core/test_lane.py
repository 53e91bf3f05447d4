from __future__ import annotations

import asyncio
from typing import Any, Callable

import hypothesis.strategies as st
import pytest
from hypothesis import given, settings

from paperlaunch.config import LaneConfig
from paperlaunch.core.animation import AsyncAnimator
from paperlaunch.core.clock import SimClock
from paperlaunch.core.entries import Entry, LaunchEntry
from paperlaunch.core.geometry import Rect
from paperlaunch.core.lane import (
    EntryState,
    LaneState,
    LaneStateMachine,
    layout_slots,
    stagger_schedule,
)
from paperlaunch.core.listeners import RecordingListener
from paperlaunch.core.touch import TouchAction

MOVE = TouchAction.MOVE
UP = TouchAction.UP

# Right-docked lane: x >= 80 is over the screen edge side, x < 80 commits.
OUTSIDE_X = 200.0


LaneFactory = Callable[..., tuple[LaneStateMachine, RecordingListener]]


def _entries(n: int) -> list[Entry]:
    return [LaunchEntry(id=f"e{i}", name=f"e{i}") for i in range(n)]


@pytest.fixture(scope="session")
def make_lane(make_config: Callable[..., LaneConfig]) -> LaneFactory:
    def _make(
        n: int = 3, *, animator: Any = None, **overrides: Any
    ) -> tuple[LaneStateMachine, RecordingListener]:
        rec = RecordingListener()
        lane = LaneStateMachine(
            _entries(n), make_config(**overrides), listener=rec, animator=animator
        )
        lane.start()
        return lane, rec

    return _make


def _transitions_to(rec: RecordingListener, state: LaneState) -> int:
    return sum(1 for old, new in rec.of("state") if new is state and old is not new)


def test_focus_from_pointer_y_then_release_cancels(make_lane: LaneFactory) -> None:
    lane, rec = make_lane(3)
    assert lane.state is LaneState.FOCUSING
    lane.handle_touch(MOVE, OUTSIDE_X, 150)
    assert lane.focused_index == 1
    assert lane.focused_entry is not None and lane.focused_entry.id == "e1"
    # Releasing past the border commits nothing: only moves commit.
    lane.handle_touch(UP, 10, 150)
    assert lane.state is LaneState.INIT
    assert rec.of("selected") == []
    assert _transitions_to(rec, LaneState.SELECTING) == 0


@pytest.mark.asyncio
async def test_end_mid_animation_cancels_selection(make_lane: LaneFactory) -> None:
    clock = SimClock()
    lane, rec = make_lane(3, animator=AsyncAnimator(clock))
    lane.handle_touch(MOVE, OUTSIDE_X, 250)
    assert lane.focused_index == 2
    lane.handle_touch(MOVE, 50, 250)
    assert lane.state is LaneState.SELECTING
    assert lane.animating
    await asyncio.sleep(0)
    clock.advance(0.1)
    await asyncio.sleep(0)

    lane.reset()
    assert lane.state is LaneState.INIT
    assert not lane.animating

    clock.advance(1.0)
    for _ in range(3):
        await asyncio.sleep(0)
    assert lane.state is LaneState.INIT
    assert rec.of("selected") == []
    assert rec.of("selecting")[-1] == (None,)


@pytest.mark.asyncio
async def test_animation_completion_selects(make_lane: LaneFactory) -> None:
    clock = SimClock()
    lane, rec = make_lane(3, animator=AsyncAnimator(clock))
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    lane.handle_touch(MOVE, 40, 50)
    await asyncio.sleep(0)
    clock.advance(0.25)
    for _ in range(3):
        await asyncio.sleep(0)
    assert lane.state is LaneState.SELECTED
    selected = rec.of("selected")
    assert len(selected) == 1 and selected[0][0].id == "e0"
    assert lane.selected_entry is not None and lane.selected_entry.id == "e0"


@settings(deadline=None, max_examples=120)
@given(ys=st.lists(st.floats(min_value=-100, max_value=450, allow_nan=False), max_size=30))
def test_focus_matches_containing_interval(
    ys: list[float], make_lane: LaneFactory
) -> None:
    lane, _ = make_lane(3)
    for y in ys:
        lane.handle_touch(MOVE, OUTSIDE_X, y)
        expected = int(y // 100) if 0 <= y < 300 else None
        assert lane.focused_index == expected
        assert lane.state is LaneState.FOCUSING


def test_interval_boundaries_are_half_open(make_lane: LaneFactory) -> None:
    lane, _ = make_lane(3)
    lane.handle_touch(MOVE, OUTSIDE_X, 100)
    assert lane.focused_index == 1
    lane.handle_touch(MOVE, OUTSIDE_X, 99.999)
    assert lane.focused_index == 0
    lane.handle_touch(MOVE, OUTSIDE_X, 300)
    assert lane.focused_index is None


def test_commit_fires_once_per_crossing(
    manual_animator: Any, make_lane: LaneFactory
) -> None:
    lane, rec = make_lane(3, animator=manual_animator)
    lane.handle_touch(MOVE, OUTSIDE_X, 150)
    for x in (70, 60, 50, 10, 0, -20):
        lane.handle_touch(MOVE, x, 150)
    assert lane.state is LaneState.SELECTING
    assert _transitions_to(rec, LaneState.SELECTING) == 1
    assert len(manual_animator.started) == 1
    assert [args[0].id for args in rec.of("selecting") if args[0] is not None] == ["e1"]


def test_no_commit_without_focus(make_lane: LaneFactory) -> None:
    lane, rec = make_lane(3)
    lane.handle_touch(MOVE, 10, 350)
    assert lane.focused_index is None
    assert lane.state is LaneState.FOCUSING
    assert _transitions_to(rec, LaneState.SELECTING) == 0


@settings(deadline=None, max_examples=80)
@given(ys=st.lists(st.floats(min_value=-50, max_value=400, allow_nan=False), max_size=20))
def test_release_while_focusing_never_selects(
    ys: list[float], make_lane: LaneFactory
) -> None:
    lane, rec = make_lane(3)
    for y in ys:
        lane.handle_touch(MOVE, OUTSIDE_X, y)
    lane.handle_touch(UP, OUTSIDE_X, ys[-1] if ys else 0.0)
    assert lane.state is LaneState.INIT
    assert rec.of("selected") == []
    assert lane.focused_index is None


def test_back_out_only_from_selected(
    manual_animator: Any, make_lane: LaneFactory
) -> None:
    lane, rec = make_lane(3, animator=manual_animator)
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    lane.handle_touch(MOVE, 40, 50)
    assert lane.state is LaneState.SELECTING
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    assert lane.state is LaneState.SELECTING

    manual_animator.finish_last()
    assert lane.state is LaneState.SELECTED
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    assert lane.state is LaneState.FOCUSING
    assert lane.focused_index is None
    assert lane.selected_entry is None
    assert rec.of("selecting")[-1] == (None,)


def test_init_ignores_samples(make_config: Callable[..., LaneConfig]) -> None:
    rec = RecordingListener()
    lane = LaneStateMachine(_entries(3), make_config(), listener=rec)
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    lane.handle_touch(MOVE, 10, 50)
    assert lane.state is LaneState.INIT
    assert rec.calls == []


def test_zero_entries_never_commits(make_lane: LaneFactory) -> None:
    lane, rec = make_lane(0)
    assert lane.state is LaneState.FOCUSING
    for y in (0, 50, 150):
        lane.handle_touch(MOVE, 10, y)
    assert lane.focused_index is None
    assert lane.state is LaneState.FOCUSING
    lane.handle_touch(UP, 10, 0)
    assert lane.state is LaneState.INIT


def test_commit_boundary_has_no_dead_zone(make_lane: LaneFactory) -> None:
    # Known edge: a pointer jittering around x == lane width flips between
    # SELECTED and FOCUSING on every sample.
    lane, rec = make_lane(3)
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    lane.handle_touch(MOVE, 80, 50)
    assert lane.state is LaneState.FOCUSING
    lane.handle_touch(MOVE, 79.9, 50)
    assert lane.state is LaneState.SELECTED
    lane.handle_touch(MOVE, 80, 50)
    assert lane.state is LaneState.SELECTED
    lane.handle_touch(MOVE, 80.1, 50)
    assert lane.state is LaneState.FOCUSING
    lane.handle_touch(MOVE, 79.9, 50)
    assert lane.state is LaneState.SELECTED
    assert len(rec.of("selected")) == 2


def test_left_docked_edges(make_lane: LaneFactory) -> None:
    lane, _ = make_lane(3, is_on_right_side=False)
    lane.handle_touch(MOVE, -5, 50)
    assert lane.state is LaneState.FOCUSING
    lane.handle_touch(MOVE, 0, 50)
    assert lane.state is LaneState.FOCUSING
    lane.handle_touch(MOVE, 1, 50)
    assert lane.state is LaneState.SELECTED
    lane.handle_touch(MOVE, 0, 50)
    assert lane.state is LaneState.SELECTED
    lane.handle_touch(MOVE, -1, 50)
    assert lane.state is LaneState.FOCUSING


def test_entry_states_follow_selection(
    manual_animator: Any, make_lane: LaneFactory
) -> None:
    lane, rec = make_lane(3, animator=manual_animator)
    assert lane.entry_states == (EntryState.ACTIVE,) * 3
    lane.handle_touch(MOVE, OUTSIDE_X, 150)
    assert lane.entry_states == (EntryState.ACTIVE, EntryState.FOCUSED, EntryState.ACTIVE)
    lane.handle_touch(MOVE, 10, 150)
    assert lane.entry_states == (EntryState.INACTIVE, EntryState.FOCUSED, EntryState.INACTIVE)
    src, dst = lane.selection_geometry() or (None, None)
    assert src == Rect(0, 100, 80, 200)
    assert dst == Rect(0, 0, 80, 300)
    lane.reset()
    assert lane.entry_states == (EntryState.INACTIVE,) * 3
    assert lane.selection_geometry() is None


def test_stale_completion_is_dropped(
    manual_animator: Any, make_lane: LaneFactory
) -> None:
    lane, rec = make_lane(3, animator=manual_animator)
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    lane.handle_touch(MOVE, 10, 50)
    _, first_done = manual_animator.started[-1]
    lane.handle_touch(UP, 10, 50)
    lane.start()
    lane.handle_touch(MOVE, OUTSIDE_X, 150)
    lane.handle_touch(MOVE, 10, 150)
    first_done()
    assert lane.state is LaneState.SELECTING
    manual_animator.finish_last()
    assert lane.state is LaneState.SELECTED
    assert [a[0].id for a in rec.of("selected")] == ["e1"]


def test_external_focus_out_of_range_clears(
    caplog: pytest.LogCaptureFixture, make_lane: LaneFactory
) -> None:
    lane, _ = make_lane(3)
    lane.focus_index(2)
    assert lane.focused_index == 2
    with caplog.at_level("WARNING"):
        lane.focus_index(7)
    assert lane.focused_index is None
    assert "ignoring focus request" in caplog.text


def test_reset_is_idempotent_and_survives_listener_errors(
    make_config: Callable[..., LaneConfig]
) -> None:
    class Boom(RecordingListener):
        def on_state_changed(self, old: LaneState, new: LaneState) -> None:
            raise RuntimeError("boom")

    lane = LaneStateMachine(_entries(2), make_config(), listener=Boom())
    lane.start()
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    lane.handle_touch(MOVE, 10, 50)
    assert lane.state is LaneState.SELECTED
    lane.reset()
    lane.reset()
    assert lane.state is LaneState.INIT


def test_entering_focusing_clears_selection_indicator(make_lane: LaneFactory) -> None:
    lane, rec = make_lane(2)
    assert rec.names()[:3] == ["entries", "selecting", "state"]
    assert rec.of("selecting") == [(None,)]


@pytest.mark.parametrize(
    "count,step,skip,expected",
    [
        (5, 10, None, [(2, 0), (1, 10), (3, 10), (0, 20), (4, 20)]),
        (4, 10, None, [(1, 0), (2, 0), (0, 10), (3, 10)]),
        (5, 10, 1, [(2, 0), (3, 10), (0, 20), (4, 20)]),
        (1, 30, None, [(0, 0)]),
        (0, 30, None, []),
    ],
)
def test_stagger_schedule(
    count: int, step: int, skip: int | None, expected: list[tuple[int, int]]
) -> None:
    assert stagger_schedule(count, step, skip) == expected


def test_layout_gravity() -> None:
    entries = _entries(2)
    top = layout_slots(entries, 100, 500, "top")
    center = layout_slots(entries, 100, 500, "center")
    bottom = layout_slots(entries, 100, 500, "bottom")
    assert [s.top for s in top] == [0, 100]
    assert [s.top for s in center] == [150, 250]
    assert [s.top for s in bottom] == [300, 400]
    # Never starts above the lane.
    assert layout_slots(_entries(6), 100, 500, "bottom")[0].top == 0


def test_stagger_delays_reported_on_start(
    make_config: Callable[..., LaneConfig]
) -> None:
    captured: list[Any] = []

    class Capture(RecordingListener):
        def on_entry_states(self, transitions: Any) -> None:
            captured.append(tuple(transitions))

    lane = LaneStateMachine(_entries(3), make_config(), listener=Capture())
    lane.start()
    first = captured[0]
    assert [(t.index, t.state, t.delay_ms) for t in first] == [
        (1, EntryState.ACTIVE, 0),
        (0, EntryState.ACTIVE, 30),
        (2, EntryState.ACTIVE, 30),
    ]


def test_release_while_focusing_leaves_entries_active(make_lane: LaneFactory) -> None:
    lane, _ = make_lane(3)
    lane.handle_touch(MOVE, OUTSIDE_X, 150)
    assert lane.entry_states[1] is EntryState.FOCUSED
    lane.handle_touch(UP, OUTSIDE_X, 150)
    assert lane.state is LaneState.INIT
    assert lane.entry_states == (EntryState.ACTIVE,) * 3

    # Forced teardown still hides everything.
    lane.start()
    lane.reset()
    assert lane.entry_states == (EntryState.INACTIVE,) * 3


def test_animator_failure_still_selects(
    make_lane: LaneFactory, caplog: pytest.LogCaptureFixture
) -> None:
    class Broken:
        def start(self, duration_s: float, on_done: Callable[[], None]) -> Any:
            raise RuntimeError("no running event loop")

    lane, rec = make_lane(3, animator=Broken())
    lane.handle_touch(MOVE, OUTSIDE_X, 50)
    with caplog.at_level("ERROR"):
        lane.handle_touch(MOVE, 10, 50)
    assert lane.state is LaneState.SELECTED
    assert not lane.animating
    assert [a[0].id for a in rec.of("selected")] == ["e0"]
    assert "selection animation failed to start" in caplog.text

    lane.handle_touch(UP, 10, 50)
    assert lane.state is LaneState.INIT


def test_async_animator_outside_a_loop_does_not_wedge(make_lane: LaneFactory) -> None:
    lane, _ = make_lane(3, animator=AsyncAnimator(SimClock()))
    lane.handle_touch(MOVE, OUTSIDE_X, 150)
    lane.handle_touch(MOVE, 10, 150)
    assert lane.state is LaneState.SELECTED
