"""Exception types raised by the PaperLaunch core."""

from __future__ import annotations

__all__ = [
    "PaperLaunchError",
    "ConfigurationError",
    "EntryTreeError",
    "InconsistentFocusError",
]


class PaperLaunchError(Exception):
    """Base class for all PaperLaunch errors."""


class ConfigurationError(PaperLaunchError, ValueError):
    """Geometry or settings values that cannot produce a usable layout.

    Raised for a non-positive ``max_visible``, negative sizes, or settings
    that fail validation. Callers should treat it as an upstream bug rather
    than clamp the value.
    """


class EntryTreeError(ConfigurationError):
    """The entry tree is cyclic or nested deeper than the configured limit."""


class InconsistentFocusError(PaperLaunchError):
    """A focused index points outside the lane's entries.

    Only used inside the lane state machine; it is logged and absorbed there
    and never reaches callers.
    """

    def __init__(self, index: int, count: int) -> None:
        super().__init__(f"focused index {index} out of range for {count} entries")
        self.index = index
        self.count = count
