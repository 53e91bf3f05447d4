"""Pydantic model for user settings."""

from __future__ import annotations

from typing import Any, Mapping, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from paperlaunch.errors import ConfigurationError

from .values import GEOMETRY_DEFAULTS, GRAVITY_ORDER, THEME, TIMING_DEFAULTS

Color = Tuple[int, int, int, int]

_LANE_THEME = THEME.get("colors", {}).get("lane", {})


def _theme_color(key: str, fb: Color) -> Color:
    v = _LANE_THEME.get(key)
    if isinstance(v, (list, tuple)) and len(v) == 4:
        try:
            return (int(v[0]), int(v[1]), int(v[2]), int(v[3]))
        except (TypeError, ValueError):
            return fb
    return fb


class Settings(BaseModel):
    """Launcher settings persisted to disk.

    Parameters
    ----------
    image_size_dip / image_margin_dip / entry_margin_dip: Entry geometry.
        One entry occupies ``image + 2*image_margin + 2*entry_margin`` dip
        along the lane.
    sensitivity_dip: Width of the invisible capture strip.
    is_on_right_side: Dock the strip and lanes on the right screen edge.
    gravity: Vertical placement of the entries inside a lane (``top``,
        ``center`` or ``bottom``).
    entry_move_step_ms: Delay between neighbouring entries when a lane
        changes the state of all entries at once.
    selection_animation_ms: Duration of the focused-entry-to-indicator
        animation; the lane becomes *Selected* when it ends.
    activation_offset_position_dip / activation_offset_size_dip: Shift and
        shrink the capture strip along the docked edge.
    active: When false the launcher is paused and no strip is installed.
    """

    image_size_dip: float = Field(
        default=float(GEOMETRY_DEFAULTS["image_size_dip"]), ge=0
    )
    image_margin_dip: float = Field(
        default=float(GEOMETRY_DEFAULTS["image_margin_dip"]), ge=0
    )
    entry_margin_dip: float = Field(
        default=float(GEOMETRY_DEFAULTS["entry_margin_dip"]), ge=0
    )
    sensitivity_dip: float = Field(
        default=float(GEOMETRY_DEFAULTS["sensitivity_dip"]), ge=0
    )
    activation_offset_position_dip: float = Field(
        default=float(GEOMETRY_DEFAULTS["activation_offset_position_dip"])
    )
    activation_offset_size_dip: float = Field(
        default=float(GEOMETRY_DEFAULTS["activation_offset_size_dip"]), ge=0
    )
    is_on_right_side: bool = Field(default=bool(GEOMETRY_DEFAULTS["is_on_right_side"]))
    gravity: str = Field(default=str(GEOMETRY_DEFAULTS["gravity"]))
    entry_move_step_ms: int = Field(
        default=int(TIMING_DEFAULTS["entry_move_step_ms"]), ge=0
    )
    selection_animation_ms: int = Field(
        default=int(TIMING_DEFAULTS["selection_animation_ms"]), ge=0
    )
    frame_default_color: Color = Field(
        default=_theme_color("frame_default", (238, 238, 238, 255))
    )
    active: bool = Field(default=True)

    @field_validator("gravity")
    @classmethod
    def _chk_gravity(cls, v: str) -> str:
        v = str(v).strip().lower()
        if v not in set(GRAVITY_ORDER):
            raise ValueError("invalid gravity: must be one of " + ", ".join(GRAVITY_ORDER))
        return v

    @field_validator("frame_default_color")
    @classmethod
    def _chk_color(cls, v: Color) -> Color:
        if any(c < 0 or c > 255 for c in v):
            raise ValueError("color channels must be within 0..255")
        return v


def parse_settings(data: Mapping[str, Any]) -> Settings:
    """Validate *data* into :class:`Settings`.

    Raises:
        ConfigurationError: wrapping the pydantic validation error.
    """
    try:
        return Settings.model_validate(dict(data))
    except ValidationError as e:
        raise ConfigurationError(f"invalid settings: {e}") from e


__all__ = ["Color", "Settings", "parse_settings"]
