from __future__ import annotations

import asyncio
import os
from pathlib import Path

import pytest

from paperlaunch.core.events import EventBus, unpack
from paperlaunch.settings.schema import Settings
from paperlaunch.settings.store import SettingsStore
from paperlaunch.tools.config_watcher import ConfigWatcher


def test_check_publishes_on_mtime_change(home: Path) -> None:
    bus = EventBus()
    sub = bus.subscribe("cfg.changed")
    watcher = ConfigWatcher(bus, poll_interval_s=0)
    assert watcher.path == str(home / "settings.json")
    assert not watcher.check()

    SettingsStore.save(Settings(gravity="bottom"))
    assert watcher.check()
    env = sub.get_nowait()
    assert env is not None
    assert unpack(env.payload)["gravity"] == "bottom"
    assert not watcher.check()

    SettingsStore.save(Settings(gravity="top"))
    st = os.stat(home / "settings.json")
    os.utime(home / "settings.json", (st.st_atime, st.st_mtime + 5))
    assert watcher.check()


def test_negative_interval_rejected() -> None:
    with pytest.raises(ValueError):
        ConfigWatcher(EventBus(), poll_interval_s=-1)


@pytest.mark.asyncio
async def test_polling_picks_up_external_writes(home: Path) -> None:
    bus = EventBus()
    sub = bus.subscribe("cfg.changed")
    watcher = ConfigWatcher(bus, poll_interval_s=0.01)
    await watcher.run()
    SettingsStore.save(Settings(entry_move_step_ms=7))
    for _ in range(50):
        if sub.pending():
            break
        await asyncio.sleep(0.01)
    await watcher.stop()
    env = sub.get_nowait()
    assert env is not None
    assert unpack(env.payload)["entry_move_step_ms"] == 7


@pytest.mark.asyncio
async def test_reload_request_triggers_check(home: Path) -> None:
    bus = EventBus()
    sub = bus.subscribe("cfg.changed")
    watcher = ConfigWatcher(bus, poll_interval_s=0)
    await watcher.run()
    await asyncio.sleep(0)
    SettingsStore.save(Settings(gravity="top"))
    await bus.publish("cfg.reload", b"")
    await asyncio.sleep(0)
    await watcher.stop()
    env = sub.get_nowait()
    assert env is not None
    assert unpack(env.payload)["gravity"] == "top"
