"""Integer screen geometry helpers.

Rectangles use the half-open convention ``[left, right) x [top, bottom)`` so
adjacent entries never both contain the same pixel row.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Point", "Rect", "activation_strip_rect"]


@dataclass(frozen=True, slots=True)
class Point:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True, slots=True)
class Rect:
    left: int
    top: int
    right: int
    bottom: int

    @classmethod
    def from_size(cls, left: int, top: int, width: int, height: int) -> "Rect":
        return cls(left, top, left + width, top + height)

    @property
    def width(self) -> int:
        return self.right - self.left

    @property
    def height(self) -> int:
        return self.bottom - self.top

    @property
    def origin(self) -> Point:
        return Point(float(self.left), float(self.top))

    def is_empty(self) -> bool:
        return self.right <= self.left or self.bottom <= self.top

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x < self.right and self.top <= y < self.bottom

    def intersect(self, other: "Rect") -> "Rect | None":
        """Return the overlap with *other*, or None when they do not overlap."""
        left = max(self.left, other.left)
        top = max(self.top, other.top)
        right = min(self.right, other.right)
        bottom = min(self.bottom, other.bottom)
        if right <= left or bottom <= top:
            return None
        return Rect(left, top, right, bottom)

    def offset(self, dx: int, dy: int) -> "Rect":
        return Rect(self.left + dx, self.top + dy, self.right + dx, self.bottom + dy)


def activation_strip_rect(
    sensitivity: int,
    offset_position: int,
    offset_size: int,
    is_on_right_side: bool,
    available: Rect,
) -> Rect:
    """Compute the capture strip rectangle inside *available*.

    The strip is *sensitivity* pixels wide and hugs the docked edge. Its
    height is the available height shrunk by *offset_size*, centred and then
    shifted along the edge by *offset_position*. If the result falls
    completely outside *available* the whole available rect is returned.
    """
    if is_on_right_side:
        left, right = available.right - sensitivity, available.right
    else:
        left, right = available.left, available.left + sensitivity

    height = available.height - offset_size
    top = available.top + offset_position + offset_size // 2
    candidate = Rect(left, top, right, top + height)

    clipped = candidate.intersect(available)
    if clipped is None:
        return available
    return clipped
