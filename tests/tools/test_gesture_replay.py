from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from paperlaunch.core.clock import SimClock
from paperlaunch.core.touch import TouchAction, TouchEvent
from paperlaunch.tools.gesture_replay import GestureRecorder, GestureReplayer, load_gesture

GESTURE = [
    TouchEvent(TouchAction.DOWN, 6, 130, ts=0.0),
    TouchEvent(TouchAction.MOVE, -30, 130, ts=0.1),
    TouchEvent(TouchAction.UP, -30, 130, ts=0.5),
]


def _write(path: Path) -> None:
    with GestureRecorder(path) as rec:
        rec.record_all(GESTURE)
        assert rec.count == 3


def test_record_and_load(tmp_path: Path) -> None:
    path = tmp_path / "g.jsonl"
    _write(path)
    assert load_gesture(path) == GESTURE


def test_invalid_lines_are_skipped(tmp_path: Path) -> None:
    path = tmp_path / "g.jsonl"
    path.write_text(
        '{"action": "up", "x": 1, "y": 2, "ts": 2}\n'
        "\n"
        "not json\n"
        '{"action": "wiggle", "x": 1, "y": 2}\n'
        '{"action": "down", "x": 1, "y": 2, "ts": 1}\n'
    )
    events = load_gesture(path)
    assert [e.action for e in events] == [TouchAction.DOWN, TouchAction.UP]


def test_record_requires_open(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        GestureRecorder(tmp_path / "g.jsonl").record(GESTURE[0])


@pytest.mark.asyncio
async def test_replay_on_sim_clock(tmp_path: Path) -> None:
    path = tmp_path / "g.jsonl"
    _write(path)
    clock = SimClock(start=10.0)
    got: list[tuple[float, TouchAction]] = []
    replayer = GestureReplayer(path, clock, speed=2.0)
    task = asyncio.create_task(replayer.run(lambda e: got.append((clock.monotonic(), e.action))))
    await asyncio.sleep(0)
    assert got == [(10.0, TouchAction.DOWN)]
    assert replayer.next_due_monotonic() == pytest.approx(10.05)

    while not task.done():
        due = clock.next_due()
        if due is not None:
            clock.set_time(max(clock.monotonic(), due))
        await asyncio.sleep(0)
    assert await task == 3
    assert [a for _, a in got] == [TouchAction.DOWN, TouchAction.MOVE, TouchAction.UP]
    assert got[-1][0] == pytest.approx(10.25)


@pytest.mark.asyncio
async def test_empty_file_replays_nothing(tmp_path: Path) -> None:
    path = tmp_path / "empty.jsonl"
    path.write_text("")
    assert await GestureReplayer(path, SimClock()).run(lambda e: None) == 0


def test_speed_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        GestureReplayer(tmp_path / "g.jsonl", SimClock(), speed=0)
