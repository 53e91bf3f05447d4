"""Pointer samples as seen by the launcher core."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

__all__ = ["TouchAction", "TouchEvent"]


class TouchAction(str, Enum):
    DOWN = "down"
    MOVE = "move"
    UP = "up"
    CANCEL = "cancel"

    @property
    def is_release(self) -> bool:
        return self in (TouchAction.UP, TouchAction.CANCEL)


@dataclass(frozen=True, slots=True)
class TouchEvent:
    """One pointer sample in the coordinate space of the surface that got it."""

    action: TouchAction
    x: float
    y: float
    ts: float = 0.0

    def to_dict(self) -> dict[str, object]:
        return {"action": self.action.value, "x": self.x, "y": self.y, "ts": self.ts}

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "TouchEvent":
        return cls(
            action=TouchAction(str(data["action"])),
            x=float(data["x"]),  # type: ignore[arg-type]
            y=float(data["y"]),  # type: ignore[arg-type]
            ts=float(data.get("ts", 0.0)),  # type: ignore[arg-type]
        )
