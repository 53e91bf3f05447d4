"""Settings persistence helpers."""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import ClassVar

from pydantic import ValidationError

from .schema import Settings

logger = logging.getLogger(__name__)


def paperlaunch_home() -> Path:
    """Return the data directory (``$PAPERLAUNCH_HOME`` or ``~/.paperlaunch``)."""
    home = os.environ.get("PAPERLAUNCH_HOME")
    if home:
        return Path(home).expanduser()
    return Path(os.path.expanduser("~/.paperlaunch"))


class SettingsStore:
    """Load and save :class:`Settings` to disk."""

    _debounce: ClassVar[asyncio.TimerHandle | None] = None

    @staticmethod
    def settings_path() -> Path:
        return paperlaunch_home() / "settings.json"

    @classmethod
    def ensure_home(cls) -> Path:
        path = cls.settings_path().parent
        path.mkdir(parents=True, exist_ok=True)
        return path

    @classmethod
    def load(cls) -> Settings:
        """Load settings from disk, returning defaults on error."""
        path = cls.settings_path()
        cls.ensure_home()
        try:
            data = json.loads(path.read_text())
            return Settings.model_validate(data)
        except FileNotFoundError:
            return Settings()
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("settings file %s unusable, using defaults: %s", path, e)
            return Settings()

    @classmethod
    def save(cls, settings: Settings) -> None:
        """Atomically persist *settings* to disk."""
        path = cls.settings_path()
        cls.ensure_home()
        tmp = path.with_suffix(".tmp")
        tmp.write_text(settings.model_dump_json(indent=2))
        os.replace(tmp, path)

    @classmethod
    def save_debounced(cls, settings: Settings, delay_s: float = 0.3) -> None:
        """Debounce successive saves with *delay_s* seconds."""
        loop = asyncio.get_running_loop()
        if cls._debounce is not None:
            cls._debounce.cancel()

        def _cb() -> None:
            cls._debounce = None
            cls.save(settings)

        cls._debounce = loop.call_later(delay_s, _cb)
