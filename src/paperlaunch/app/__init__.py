"""Application package for PaperLaunch.

Holds the runnable entrypoints that compose the core with a real clock,
the settings watcher and an input backend.
"""

from . import desktop  # re-export the desktop runner module

__all__ = ["desktop"]
