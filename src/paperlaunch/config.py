"""Runtime configuration helpers.

Turns the user-facing :class:`~paperlaunch.settings.schema.Settings` (dip and
milliseconds) plus the current :class:`DisplayMetrics` into a frozen
:class:`LaneConfig` in pixels. A lane copies the snapshot when it is created;
any settings or orientation change produces a new snapshot rather than
updating the old one.
"""

from __future__ import annotations

from dataclasses import dataclass

from paperlaunch.core.geometry import Rect, activation_strip_rect
from paperlaunch.core.pagination import max_visible_for
from paperlaunch.errors import ConfigurationError
from paperlaunch.settings.schema import Color, Settings

__all__ = ["DisplayMetrics", "LaneConfig", "dip_to_px", "make_lane_config"]


@dataclass(frozen=True, slots=True)
class DisplayMetrics:
    width_px: int
    height_px: int
    density: float = 1.0

    def screen_extent_along_layout_axis(self) -> int:
        """Lanes stack entries vertically, so the layout axis is the height."""
        return self.height_px


@dataclass(frozen=True, slots=True)
class LaneConfig:
    is_on_right_side: bool
    gravity: str
    image_size_px: int
    entry_extent_px: int
    lane_width_px: int
    sensitivity_px: int
    screen_width_px: int
    screen_height_px: int
    strip_rect: Rect
    max_visible: int
    entry_move_step_ms: int
    selection_animation_ms: int
    frame_default_color: Color

    @property
    def selection_animation_s(self) -> float:
        return self.selection_animation_ms / 1000.0


def dip_to_px(dip: float, density: float) -> int:
    if dip < 0:
        raise ConfigurationError(f"size must be >= 0 dip (got {dip})")
    return int(dip * density)


def make_lane_config(settings: Settings, metrics: DisplayMetrics) -> LaneConfig:
    """Build the pixel snapshot for *settings* on a display with *metrics*.

    Raises:
        ConfigurationError: for a non-positive density or screen size, or an
            entry geometry that leaves no room for a single entry.
    """
    if metrics.density <= 0:
        raise ConfigurationError(f"density must be > 0 (got {metrics.density})")
    if metrics.width_px <= 0 or metrics.height_px <= 0:
        raise ConfigurationError(
            f"screen size must be positive (got {metrics.width_px}x{metrics.height_px})"
        )

    d = metrics.density
    entry_extent_dip = (
        settings.image_size_dip
        + 2 * settings.image_margin_dip
        + 2 * settings.entry_margin_dip
    )
    entry_extent_px = dip_to_px(entry_extent_dip, d)
    max_visible = max_visible_for(
        metrics.screen_extent_along_layout_axis(), entry_extent_px
    )
    if max_visible <= 0:
        raise ConfigurationError(
            f"entries of {entry_extent_px}px do not fit a "
            f"{metrics.screen_extent_along_layout_axis()}px screen"
        )

    sensitivity_px = dip_to_px(settings.sensitivity_dip, d)
    screen = Rect(0, 0, metrics.width_px, metrics.height_px)
    strip = activation_strip_rect(
        sensitivity_px,
        int(settings.activation_offset_position_dip * d),
        dip_to_px(settings.activation_offset_size_dip, d),
        settings.is_on_right_side,
        screen,
    )

    return LaneConfig(
        is_on_right_side=settings.is_on_right_side,
        gravity=settings.gravity,
        image_size_px=dip_to_px(settings.image_size_dip, d),
        entry_extent_px=entry_extent_px,
        lane_width_px=entry_extent_px,
        sensitivity_px=sensitivity_px,
        screen_width_px=metrics.width_px,
        screen_height_px=metrics.height_px,
        strip_rect=strip,
        max_visible=max_visible,
        entry_move_step_ms=settings.entry_move_step_ms,
        selection_animation_ms=settings.selection_animation_ms,
        frame_default_color=settings.frame_default_color,
    )
