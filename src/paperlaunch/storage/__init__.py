"""Persistence for the launcher's configured entries.

Currently a single SQLite store; see :mod:`.entries_store` for the layout.
"""

from .entries_store import ROOT_FOLDER_ID, EntriesStore, EntryRow

__all__ = [
    "ROOT_FOLDER_ID",
    "EntriesStore",
    "EntryRow",
]
