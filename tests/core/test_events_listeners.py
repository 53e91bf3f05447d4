from __future__ import annotations

import asyncio

import pytest

from paperlaunch.core.entries import Folder, LaunchEntry
from paperlaunch.core.events import EventBus, pack, unpack
from paperlaunch.core.lane import EntryState, EntryTransition, LaneState
from paperlaunch.core.listeners import (
    TOPIC_ENTRIES,
    TOPIC_LAUNCH,
    TOPIC_SELECTED,
    TOPIC_SELECTING,
    TOPIC_STATE,
    BusLaneListener,
    RecordingListener,
)
from paperlaunch.core.touch import TouchAction, TouchEvent


@pytest.mark.asyncio
async def test_publish_and_iterate() -> None:
    bus = EventBus()
    sub = bus.subscribe("t")
    await bus.publish("t", pack({"n": 1}))
    bus.publish_nowait("t", pack({"n": 2}))
    got = []
    async for env in sub:
        got.append(unpack(env.payload)["n"])
        if len(got) == 2:
            break
    assert got == [1, 2]
    assert bus.stats("t").publishes == 2
    assert bus.list_topics() == {"t": 1}


@pytest.mark.asyncio
async def test_drop_oldest_when_full() -> None:
    bus = EventBus()
    sub = bus.subscribe("t", maxsize=2)
    for i in range(4):
        bus.publish_nowait("t", pack(i))
    assert sub.pending() == 2
    assert [unpack(sub.get_nowait().payload) for _ in range(2)] == [2, 3]  # type: ignore[union-attr]
    assert bus.stats("t").drops == 2


@pytest.mark.asyncio
async def test_close_ends_iteration() -> None:
    bus = EventBus()
    sub = bus.subscribe("t")

    async def consume() -> int:
        n = 0
        async for _ in sub:
            n += 1
        return n

    task = asyncio.create_task(consume())
    bus.publish_nowait("t", b"x")
    await asyncio.sleep(0)
    await bus.close()
    assert await task == 1
    assert bus.closed
    with pytest.raises(RuntimeError):
        bus.publish_nowait("t", b"y")


@pytest.mark.asyncio
async def test_unsubscribe() -> None:
    bus = EventBus()
    sub = bus.subscribe("t")
    await sub.close()
    bus.publish_nowait("t", b"x")
    assert sub.get_nowait() is None
    assert bus.list_topics() == {"t": 0}


def test_bus_listener_payloads() -> None:
    bus = EventBus()
    subs = {
        t: bus.subscribe(t)
        for t in (TOPIC_SELECTING, TOPIC_SELECTED, TOPIC_STATE, TOPIC_ENTRIES, TOPIC_LAUNCH)
    }
    listener = BusLaneListener(bus)
    mail = LaunchEntry(id="1", name="Mail", target="app://mail")
    folder = Folder(id="2", name="Tools", entries=(mail,))

    listener.on_item_selecting(None)
    listener.on_item_selected(folder)
    listener.on_state_changed(LaneState.FOCUSING, LaneState.SELECTING)
    listener.on_entry_states([EntryTransition(0, EntryState.FOCUSED, 30)])
    listener.on_launch(mail)

    def first(topic: str) -> object:
        env = subs[topic].get_nowait()
        assert env is not None
        return unpack(env.payload)

    assert first(TOPIC_SELECTING) == {"entry": None}
    selected = first(TOPIC_SELECTED)
    assert selected["entry"]["id"] == "2"  # type: ignore[index]
    assert "entries" not in selected["entry"]  # type: ignore[index]
    assert first(TOPIC_STATE) == {"old": "focusing", "new": "selecting"}
    assert first(TOPIC_ENTRIES) == {"transitions": [[0, "focused", 30]]}
    assert first(TOPIC_LAUNCH)["entry"]["target"] == "app://mail"  # type: ignore[index]


@pytest.mark.asyncio
async def test_bus_listener_after_close_is_quiet() -> None:
    bus = EventBus()
    await bus.close()
    BusLaneListener(bus).on_item_selecting(None)


def test_recording_listener() -> None:
    rec = RecordingListener()
    e = LaunchEntry(id="1")
    rec.on_item_selecting(e)
    rec.on_state_changed(LaneState.INIT, LaneState.FOCUSING)
    rec.on_launch(e)
    assert rec.names() == ["selecting", "state", "launch"]
    assert rec.of("launch") == [(e,)]


def test_touch_event_dict_round_trip() -> None:
    ev = TouchEvent(TouchAction.MOVE, 10.5, 20.0, ts=1.25)
    assert TouchEvent.from_dict(ev.to_dict()) == ev
    assert TouchEvent.from_dict({"action": "up", "x": 1, "y": 2}).ts == 0.0
    assert TouchAction.CANCEL.is_release and TouchAction.UP.is_release
    assert not TouchAction.MOVE.is_release
