"""SQLite persistence for the launcher's configured entries.

Layout:

- ``entries``: one row per position in a folder (``parent_folder_id``, ``-1``
  for the root), ordered by ``order_index``. A row points at either a
  ``launches`` row or a ``folders`` row.
- ``launches``: name, launch target and icon of an app entry.
- ``folders``: name and icon of a user folder; its children are the
  ``entries`` rows whose ``parent_folder_id`` is the folder id.

Loading returns immutable :mod:`paperlaunch.core.entries` models. Entry ids
are the ``entries`` row ids as strings.
"""

from __future__ import annotations

import logging
import os
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from paperlaunch.core.entries import Entry, Folder, LaunchEntry

__all__ = ["ROOT_FOLDER_ID", "EntryRow", "EntriesStore"]

_LOG = logging.getLogger(__name__)

ROOT_FOLDER_ID = -1

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS entries (
      id INTEGER PRIMARY KEY,
      order_index INTEGER NOT NULL,
      launch_id INTEGER,
      folder_id INTEGER,
      parent_folder_id INTEGER NOT NULL DEFAULT -1
    );
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_entries_parent
      ON entries (parent_folder_id, order_index);
    """,
    """
    CREATE TABLE IF NOT EXISTS launches (
      id INTEGER PRIMARY KEY,
      name TEXT NOT NULL,
      target TEXT NOT NULL DEFAULT '',
      icon TEXT,
      use_icon_color INTEGER DEFAULT 0
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS folders (
      id INTEGER PRIMARY KEY,
      name TEXT NOT NULL,
      icon TEXT,
      use_icon_color INTEGER DEFAULT 0
    );
    """,
)


@dataclass(frozen=True, slots=True)
class EntryRow:
    id: int
    order_index: int
    launch_id: Optional[int]
    folder_id: Optional[int]
    parent_folder_id: int


def _ensure_dir(path: str) -> None:
    d = os.path.dirname(path)
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


class EntriesStore:
    """Synchronous access to the entries database.

    Usable as a context manager; ``":memory:"`` gives a throwaway store.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        if self._path != ":memory:":
            self._path = os.path.expanduser(self._path)
            _ensure_dir(self._path)
        self._conn = sqlite3.connect(self._path)
        self._conn.row_factory = sqlite3.Row
        with self._conn:
            for stmt in _SCHEMA:
                self._conn.execute(stmt)

    def __enter__(self) -> "EntriesStore":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def close(self) -> None:
        self._conn.close()

    # Queries --------------------------------------------------------------
    def query_entries(self, parent_folder_id: int = ROOT_FOLDER_ID) -> List[EntryRow]:
        cur = self._conn.execute(
            "SELECT id, order_index, launch_id, folder_id, parent_folder_id "
            "FROM entries WHERE parent_folder_id = ? ORDER BY order_index, id",
            (parent_folder_id,),
        )
        return [self._row(r) for r in cur.fetchall()]

    def query_entry(self, entry_id: int) -> Optional[EntryRow]:
        cur = self._conn.execute(
            "SELECT id, order_index, launch_id, folder_id, parent_folder_id "
            "FROM entries WHERE id = ?",
            (entry_id,),
        )
        r = cur.fetchone()
        return self._row(r) if r is not None else None

    def load_root_content(self) -> List[Entry]:
        return self.load_sub_entries(ROOT_FOLDER_ID)

    def load_sub_entries(self, folder_id: int) -> List[Entry]:
        """Load the ordered entries of *folder_id* with their subtrees.

        A folder that (directly or indirectly) contains itself is loaded
        once; the repeated reference is dropped with a warning.
        """
        visited = {folder_id} if folder_id != ROOT_FOLDER_ID else set()
        return self._load_level(folder_id, visited)

    def _load_level(self, parent_folder_id: int, visited: set[int]) -> List[Entry]:
        out: List[Entry] = []
        for row in self.query_entries(parent_folder_id):
            if row.folder_id is not None:
                if row.folder_id in visited:
                    _LOG.warning(
                        "folder %s contains itself (entry %s); skipping",
                        row.folder_id,
                        row.id,
                    )
                    continue
                folder = self._folder_meta(row.folder_id)
                if folder is None:
                    _LOG.warning("entry %s points at missing folder %s", row.id, row.folder_id)
                    continue
                children = self._load_level(row.folder_id, visited | {row.folder_id})
                out.append(
                    Folder(
                        id=str(row.id),
                        name=folder["name"],
                        icon=folder["icon"],
                        use_icon_color=bool(folder["use_icon_color"]),
                        entries=tuple(children),
                    )
                )
            elif row.launch_id is not None:
                launch = self._launch_meta(row.launch_id)
                if launch is None:
                    _LOG.warning("entry %s points at missing launch %s", row.id, row.launch_id)
                    continue
                out.append(
                    LaunchEntry(
                        id=str(row.id),
                        name=launch["name"],
                        target=launch["target"],
                        icon=launch["icon"],
                        use_icon_color=bool(launch["use_icon_color"]),
                    )
                )
            else:
                _LOG.debug("entry %s has no content; skipping", row.id)
        return out

    # Mutations -----------------------------------------------------------
    def add_launch(
        self,
        name: str,
        target: str,
        *,
        parent_folder_id: int = ROOT_FOLDER_ID,
        icon: str | None = None,
        use_icon_color: bool = False,
    ) -> int:
        """Append an app entry to *parent_folder_id*; return the entry id."""
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO launches (name, target, icon, use_icon_color) VALUES (?, ?, ?, ?)",
                (name, target, icon, int(use_icon_color)),
            )
            return self._insert_entry(
                parent_folder_id, launch_id=cur.lastrowid, folder_id=None
            )

    def add_folder(
        self,
        name: str,
        *,
        parent_folder_id: int = ROOT_FOLDER_ID,
        icon: str | None = None,
        use_icon_color: bool = False,
    ) -> tuple[int, int]:
        """Append a folder; return ``(entry_id, folder_id)``."""
        with self._conn:
            cur = self._conn.execute(
                "INSERT INTO folders (name, icon, use_icon_color) VALUES (?, ?, ?)",
                (name, icon, int(use_icon_color)),
            )
            folder_id = int(cur.lastrowid or 0)
            entry_id = self._insert_entry(
                parent_folder_id, launch_id=None, folder_id=folder_id
            )
        return entry_id, folder_id

    def link_folder(
        self, folder_id: int, *, parent_folder_id: int = ROOT_FOLDER_ID
    ) -> int:
        """Add another entry pointing at an existing folder; return its id."""
        with self._conn:
            return self._insert_entry(parent_folder_id, launch_id=None, folder_id=folder_id)

    def delete(self, entry_id: int) -> None:
        """Delete an entry; a folder entry takes its whole subtree with it."""
        row = self.query_entry(entry_id)
        if row is None:
            return
        with self._conn:
            self._delete_row(row, set())

    def import_tree(
        self,
        items: Iterable[Mapping[str, Any]],
        *,
        parent_folder_id: int = ROOT_FOLDER_ID,
    ) -> int:
        """Append nested ``{"name", "target" | "entries", "icon"}`` mappings.

        Returns the number of entries created.
        """
        created = 0
        for item in items:
            name = str(item.get("name", ""))
            icon = item.get("icon")
            use_color = bool(item.get("use_icon_color", False))
            if "entries" in item:
                _, folder_id = self.add_folder(
                    name, parent_folder_id=parent_folder_id, icon=icon, use_icon_color=use_color
                )
                created += 1
                created += self.import_tree(item.get("entries") or [], parent_folder_id=folder_id)
            else:
                self.add_launch(
                    name,
                    str(item.get("target", "")),
                    parent_folder_id=parent_folder_id,
                    icon=icon,
                    use_icon_color=use_color,
                )
                created += 1
        _LOG.info("imported %d entries into folder %s", created, parent_folder_id)
        return created

    # Helpers -------------------------------------------------------------
    def _insert_entry(
        self, parent_folder_id: int, *, launch_id: Optional[int], folder_id: Optional[int]
    ) -> int:
        cur = self._conn.execute(
            "SELECT COALESCE(MAX(order_index) + 1, 0) FROM entries WHERE parent_folder_id = ?",
            (parent_folder_id,),
        )
        order_index = int(cur.fetchone()[0])
        cur = self._conn.execute(
            "INSERT INTO entries (order_index, launch_id, folder_id, parent_folder_id) "
            "VALUES (?, ?, ?, ?)",
            (order_index, launch_id, folder_id, parent_folder_id),
        )
        return int(cur.lastrowid or 0)

    def _delete_row(self, row: EntryRow, visited: set[int]) -> None:
        if row.folder_id is not None and row.folder_id not in visited:
            visited.add(row.folder_id)
            for child in self.query_entries(row.folder_id):
                self._delete_row(child, visited)
            self._conn.execute("DELETE FROM folders WHERE id = ?", (row.folder_id,))
        if row.launch_id is not None:
            self._conn.execute("DELETE FROM launches WHERE id = ?", (row.launch_id,))
        self._conn.execute("DELETE FROM entries WHERE id = ?", (row.id,))

    def _folder_meta(self, folder_id: int) -> Optional[sqlite3.Row]:
        cur = self._conn.execute(
            "SELECT name, icon, use_icon_color FROM folders WHERE id = ?", (folder_id,)
        )
        return cur.fetchone()

    def _launch_meta(self, launch_id: int) -> Optional[sqlite3.Row]:
        cur = self._conn.execute(
            "SELECT name, target, icon, use_icon_color FROM launches WHERE id = ?",
            (launch_id,),
        )
        return cur.fetchone()

    @staticmethod
    def _row(r: sqlite3.Row) -> EntryRow:
        return EntryRow(
            id=int(r["id"]),
            order_index=int(r["order_index"]),
            launch_id=int(r["launch_id"]) if r["launch_id"] is not None else None,
            folder_id=int(r["folder_id"]) if r["folder_id"] is not None else None,
            parent_folder_id=int(r["parent_folder_id"]),
        )
