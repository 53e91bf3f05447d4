from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from paperlaunch.config import LaneConfig
from paperlaunch.core.animation import AnimationHandle
from paperlaunch.core.geometry import Rect


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("PAPERLAUNCH_HOME", str(tmp_path))
    return tmp_path


@pytest.fixture(scope="session")
def make_config() -> Callable[..., LaneConfig]:
    """Right-docked 1080x300 screen, 100px entries, 80px lane, 10px strip."""

    def _make(**overrides: Any) -> LaneConfig:
        base: dict[str, Any] = dict(
            is_on_right_side=True,
            gravity="top",
            image_size_px=80,
            entry_extent_px=100,
            lane_width_px=80,
            sensitivity_px=10,
            screen_width_px=1080,
            screen_height_px=300,
            strip_rect=Rect(1070, 0, 1080, 300),
            max_visible=3,
            entry_move_step_ms=30,
            selection_animation_ms=250,
            frame_default_color=(238, 238, 238, 255),
        )
        base.update(overrides)
        return LaneConfig(**base)

    return _make


class ManualAnimator:
    """Animator whose animations finish only when told to."""

    def __init__(self) -> None:
        self.started: list[tuple[AnimationHandle, Callable[[], None]]] = []

    def start(self, duration_s: float, on_done: Callable[[], None]) -> AnimationHandle:
        handle = AnimationHandle()
        self.started.append((handle, on_done))
        return handle

    def finish_last(self) -> None:
        handle, on_done = self.started[-1]
        if not handle.cancelled:
            on_done()


@pytest.fixture
def manual_animator() -> ManualAnimator:
    return ManualAnimator()
