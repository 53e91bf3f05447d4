"""Centralized default values loaded from YAML.

The master source is ``values.yml`` next to this module. Each section is
merged over a built-in fallback so a missing or corrupt YAML file still
yields a working set of defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Sequence

import yaml

logger = logging.getLogger(__name__)

_YAML_PATH = Path(__file__).parent / "values.yml"

# --- Fallback literals ---------------------------------------------------
_FALLBACK_GEOMETRY: Dict[str, Any] = {
    "image_size_dip": 48.0,
    "image_margin_dip": 4.0,
    "entry_margin_dip": 2.0,
    "sensitivity_dip": 12.0,
    "activation_offset_position_dip": 0.0,
    "activation_offset_size_dip": 0.0,
    "is_on_right_side": True,
    "gravity": "center",
}
_FALLBACK_TIMING: Dict[str, int] = {
    "entry_move_step_ms": 30,
    "selection_animation_ms": 250,
}
_FALLBACK_GRAVITY_ORDER = ["top", "center", "bottom"]
_FALLBACK_VIRTUAL_FOLDER = {"name": "More", "icon": "ic_auto_folder_grey"}
_FALLBACK_PAGINATION = {"max_depth": 32}
_FALLBACK_THEME: Dict[str, Any] = {
    "colors": {
        "lane": {"frame_default": [238, 238, 238, 255]},
    }
}


def _load_raw(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("values file missing: %s", path)
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("failed to read values file %s: %s", path, e)
        return {}
    if not isinstance(raw, dict):
        logger.warning("values file %s is not a mapping", path)
        return {}
    return raw


def _merge_scalars(base: Dict[str, Any], section: Any) -> Dict[str, Any]:
    out = dict(base)
    if not isinstance(section, dict):
        return out
    for key, fallback in base.items():
        if key not in section:
            continue
        value = section[key]
        # Keep the fallback's type so a typo in YAML cannot turn a size
        # into a string further down the line.
        if isinstance(fallback, bool):
            if isinstance(value, bool):
                out[key] = value
        elif isinstance(fallback, (int, float)):
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                out[key] = type(fallback)(value)
        elif isinstance(fallback, str):
            if isinstance(value, str):
                out[key] = value
    return out


_raw = _load_raw(_YAML_PATH)

_geometry = _merge_scalars(_FALLBACK_GEOMETRY, _raw.get("geometry"))
_timing = _merge_scalars(_FALLBACK_TIMING, _raw.get("timing"))
_virtual_folder = _merge_scalars(_FALLBACK_VIRTUAL_FOLDER, _raw.get("virtual_folder"))
_pagination = _merge_scalars(_FALLBACK_PAGINATION, _raw.get("pagination"))

_gravity_order = list(_FALLBACK_GRAVITY_ORDER)
_order = _raw.get("gravity_order")
if isinstance(_order, list) and _order and all(isinstance(x, str) for x in _order):
    _gravity_order = list(_order)

_theme: Dict[str, Any] = dict(_FALLBACK_THEME)
_theme_raw = _raw.get("theme")
if isinstance(_theme_raw, dict) and isinstance(_theme_raw.get("colors"), dict):
    _theme = _theme_raw | {
        "colors": {**_FALLBACK_THEME["colors"], **_theme_raw["colors"]}
    }

# --- Public accessors ----------------------------------------------------
GEOMETRY_DEFAULTS: Dict[str, Any] = dict(_geometry)
TIMING_DEFAULTS: Dict[str, int] = dict(_timing)
GRAVITY_ORDER: Sequence[str] = tuple(_gravity_order)
VIRTUAL_FOLDER: Dict[str, str] = dict(_virtual_folder)
PAGINATION_DEFAULTS: Dict[str, int] = dict(_pagination)
THEME: Dict[str, Any] = dict(_theme)

__all__ = [
    "GEOMETRY_DEFAULTS",
    "TIMING_DEFAULTS",
    "GRAVITY_ORDER",
    "VIRTUAL_FOLDER",
    "PAGINATION_DEFAULTS",
    "THEME",
]
